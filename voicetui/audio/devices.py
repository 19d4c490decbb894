"""Audio input device discovery."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import pyaudio

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_ID = "default"


@dataclass(frozen=True)
class AudioDevice:
    """An input device as shown in the device selector."""
    id: str
    name: str
    is_default: bool = False


def list_input_devices() -> List[AudioDevice]:
    """List input-capable devices, always starting with the system default."""
    devices = [AudioDevice(id=DEFAULT_DEVICE_ID, name="Default Microphone", is_default=True)]

    pa = None
    try:
        pa = pyaudio.PyAudio()
        for index in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(index)
            if info.get("maxInputChannels", 0) > 0:
                devices.append(AudioDevice(id=str(index), name=info.get("name", f"Device {index}")))
    except Exception as e:
        logger.warning(f"Could not enumerate audio devices: {e}")
    finally:
        if pa:
            pa.terminate()

    logger.debug(f"Found {len(devices)} input devices")
    return devices


def get_default_device() -> Optional[AudioDevice]:
    devices = list_input_devices()
    return next((d for d in devices if d.is_default), devices[0] if devices else None)
