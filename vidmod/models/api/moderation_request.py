from pydantic import BaseModel, ConfigDict, Field

from vidmod.features.video_moderation.domain.models import ModerationJob


class ModerationTriggerRequest(BaseModel):
    """Payload sent once a video finishes uploading."""

    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(..., alias="videoId", min_length=1, description="Video row id")
    video_url: str = Field(
        ..., alias="videoUrl", min_length=1, description="Playback URL of the uploaded video"
    )
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")

    def to_job(self) -> ModerationJob:
        return ModerationJob(
            video_id=self.video_id.strip(),
            video_url=self.video_url.strip(),
            thumbnail_url=self.thumbnail_url,
        )
