class RecordingEvents:
    """Collects log events emitted by a job or runner."""

    def __init__(self):
        self.messages = []

    def log(self, message):
        self.messages.append(message)
