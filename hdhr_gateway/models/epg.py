"""
EPG (Electronic Program Guide) data models.
Maps to the HDHomeRun cloud guide response.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ProgramAiring(BaseModel):
    """A single program airing; times are epoch seconds."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(alias="Title")
    start_time: int = Field(alias="StartTime")
    end_time: int = Field(alias="EndTime")
    episode_title: Optional[str] = Field(default=None, alias="EpisodeTitle")

    def is_airing(self, now: float) -> bool:
        """Half-open interval check: start <= now < end."""
        return self.start_time <= now < self.end_time


class GuideEntry(BaseModel):
    """Guide data for one channel over the guide window."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    guide_number: str = Field(alias="GuideNumber")
    guide_name: Optional[str] = Field(default=None, alias="GuideName")
    airings: list[ProgramAiring] = Field(default_factory=list, alias="Guide")

    def current(self, now: float) -> Optional[ProgramAiring]:
        """Get the airing on now, if any."""
        for airing in self.airings:
            if airing.is_airing(now):
                return airing
        return None
