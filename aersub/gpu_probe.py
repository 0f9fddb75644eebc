"""GPU discovery methods (ping, list_devices, smoke_test) backed by PyTorch."""

import logging
from typing import List, Optional

import torch

from .exceptions import DeviceError
from .models import AdapterInfo

logger = logging.getLogger(__name__)

NVIDIA_VENDOR_ID = 0x10DE
AMD_VENDOR_ID = 0x1002
APPLE_VENDOR_ID = 0x106B

SMOKE_BUFFER_BYTES = 1024

def enumerate_adapters() -> List[AdapterInfo]:
    """Lists the compute adapters torch can reach, CUDA/ROCm devices first."""
    adapters = []
    if torch.cuda.is_available():
        is_rocm = getattr(torch.version, "hip", None) is not None
        for index in range(torch.cuda.device_count()):
            props = torch.cuda.get_device_properties(index)
            adapters.append(AdapterInfo(
                name=props.name,
                vendor=AMD_VENDOR_ID if is_rocm else NVIDIA_VENDOR_ID,
                device=index,
                device_type="IntegratedGpu" if getattr(props, "is_integrated", False) else "DiscreteGpu",
                backend="Rocm" if is_rocm else "Cuda",
                driver=str(torch.version.hip if is_rocm else torch.version.cuda),
                driver_info=f"compute {props.major}.{props.minor}, {props.total_memory} bytes",
            ))
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available():
        adapters.append(AdapterInfo(
            name="Apple GPU",
            vendor=APPLE_VENDOR_ID,
            device=0,
            device_type="IntegratedGpu",
            backend="Metal",
            driver="mps",
            driver_info=f"torch {torch.__version__}",
        ))
    logger.debug(f"Enumerated {len(adapters)} GPU adapter(s)")
    return adapters

def _torch_device(info: AdapterInfo) -> torch.device:
    if info.backend == "Metal":
        return torch.device("mps")
    return torch.device("cuda", info.device)

def ping_response_from_info(info: Optional[AdapterInfo]) -> dict:
    if info is None:
        return {
            "message": "Runtime ready (CPU fallback)",
            "gpu_enabled": False,
            "gpu_name": None,
            "gpu_backend": "CPU",
            "gpu_type": "Cpu",
        }
    return {
        "message": "Runtime ready",
        "gpu_enabled": True,
        "gpu_name": info.name,
        "gpu_backend": info.backend,
        "gpu_type": info.device_type,
    }

def list_devices_from_infos(infos: List[AdapterInfo]) -> dict:
    devices = [
        {
            "name": info.name,
            "vendor": info.vendor,
            "device": info.device,
            "device_type": info.device_type,
            "backend": info.backend,
            "driver": info.driver,
            "driver_info": info.driver_info,
        }
        for info in infos
    ]
    return {"devices": devices}

def ping_with_gpu_info() -> dict:
    adapters = enumerate_adapters()
    return ping_response_from_info(adapters[0] if adapters else None)

def list_devices() -> dict:
    return list_devices_from_infos(enumerate_adapters())

def smoke_test() -> dict:
    """
    Allocates a small buffer on the first adapter to prove it is usable.

    Raises:
        DeviceError: If no adapter is available.
    """
    adapters = enumerate_adapters()
    if not adapters:
        raise DeviceError("No compatible GPU adapters found")
    info = adapters[0]
    device = _torch_device(info)
    buffer = torch.zeros(SMOKE_BUFFER_BYTES // 4, dtype=torch.float32, device=device)
    buffer.add_(1.0)
    # Forces the allocation and kernel to complete before reporting success.
    buffer.sum().item()
    logger.info(f"Smoke test allocated {SMOKE_BUFFER_BYTES} bytes on {info.name}")
    return {"message": f"Smoke test ok on {info.name} ({info.backend})"}
