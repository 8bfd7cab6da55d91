"""
Tuner device data models.
Maps to the HDHomeRun local HTTP API schema (lineup.json, discover.json).
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Channel(BaseModel):
    """One lineup entry as reported by the tuner's lineup.json."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore", coerce_numbers_to_str=True)

    guide_number: str = Field(alias="GuideNumber")
    display_name: str = Field(default="", alias="GuideName")

    # Optional facts, depending on tuner model and firmware
    video_codec: Optional[str] = Field(default=None, alias="VideoCodec")
    audio_codec: Optional[str] = Field(default=None, alias="AudioCodec")
    hd: bool = Field(default=False, alias="HD")
    signal_strength: Optional[int] = Field(default=None, alias="SignalStrength")
    signal_quality: Optional[int] = Field(default=None, alias="SignalQuality")
    url: Optional[str] = Field(default=None, alias="URL")

    @property
    def name(self) -> str:
        """Display name, falling back to a synthetic one."""
        return self.display_name or f"Channel {self.guide_number}"


class TunerDevice(BaseModel):
    """Device identity from discover.json."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore", coerce_numbers_to_str=True)

    friendly_name: str = Field(default="HDHomeRun", alias="FriendlyName")
    model_number: str = Field(default="", alias="ModelNumber")
    firmware_version: str = Field(default="", alias="FirmwareVersion")
    device_id: Optional[str] = Field(default=None, alias="DeviceID")
    tuner_count: Optional[int] = Field(default=None, alias="TunerCount")
    base_url: Optional[str] = Field(default=None, alias="BaseURL")
    # Unlocks guide data; never logged or serialized
    device_auth: Optional[str] = Field(default=None, alias="DeviceAuth", repr=False, exclude=True)

    @property
    def has_auth(self) -> bool:
        return bool(self.device_auth)
