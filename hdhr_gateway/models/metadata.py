"""
Client resolution protocol models: manifest, catalog previews, meta, streams.
Field names follow the Stremio add-on protocol (camelCase on the wire).
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ProtocolModel(BaseModel):
    """Base for wire models; serialize with to_wire()."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class CatalogDescriptor(ProtocolModel):
    type: str
    id: str
    name: str
    extra: list[dict] = Field(default_factory=list)


class Manifest(ProtocolModel):
    """Add-on manifest served at /manifest.json."""
    id: str
    version: str
    name: str
    description: str
    resources: list[str] = Field(default_factory=lambda: ["catalog", "meta", "stream"])
    types: list[str]
    catalogs: list[CatalogDescriptor]
    id_prefixes: list[str] = Field(alias="idPrefixes")
    logo: Optional[str] = None


class MetaPreview(ProtocolModel):
    """Catalog listing summary."""
    id: str
    type: str
    name: str
    poster: Optional[str] = None
    poster_shape: str = Field(default="square", alias="posterShape")
    logo: Optional[str] = None
    description: Optional[str] = None


class MetaBehaviorHints(ProtocolModel):
    default_video_id: Optional[str] = Field(default=None, alias="defaultVideoId")


class Meta(MetaPreview):
    """Detailed item; live channels have no runtime."""
    background: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    release_info: Optional[str] = Field(default=None, alias="releaseInfo")
    runtime: Optional[str] = None
    behavior_hints: Optional[MetaBehaviorHints] = Field(default=None, alias="behaviorHints")


class StreamBehaviorHints(ProtocolModel):
    not_web_ready: Optional[bool] = Field(default=None, alias="notWebReady")
    binge_group: Optional[str] = Field(default=None, alias="bingeGroup")


class Stream(ProtocolModel):
    """Playable (or informational) stream descriptor."""
    title: str
    name: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    # Informational entries open a page instead of playing media
    external_url: Optional[str] = Field(default=None, alias="externalUrl")
    behavior_hints: Optional[StreamBehaviorHints] = Field(default=None, alias="behaviorHints")
