from pydantic import BaseModel, ConfigDict, Field


class ModerationTriggerResponse(BaseModel):
    """Acknowledgement that a moderation job was queued."""

    model_config = ConfigDict(populate_by_name=True)

    accepted: bool = True
    video_id: str = Field(..., alias="videoId")
    status: str = "queued"


class InFlightModerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_ids: list[str] = Field(default_factory=list, alias="videoIds")
    count: int = 0
