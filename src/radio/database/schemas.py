"""
Radio Pydantic Schemas
Backend record shapes plus request/response models for the API
"""

from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


# Base configuration for all schemas
class BaseSchema(BaseModel):
    """Base schema with common configuration"""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        protected_namespaces=(),
    )


def _empty_to_none(value: Any) -> Any:
    """The backend stores unset relations and text fields as empty strings"""
    if value == "":
        return None
    return value


OptionalText = Annotated[Optional[str], BeforeValidator(_empty_to_none)]


# Record Schemas
class RecordBase(BaseSchema):
    """Fields every backend record carries"""
    id: str
    created: Optional[str] = None
    updated: Optional[str] = None


class UserRecord(RecordBase):
    email: Optional[str] = None
    name: Optional[str] = None
    verified: bool = False


class TrackRecord(RecordBase):
    """A generated or catalogued song"""
    track_id: OptionalText = Field(None, description="External generation API id")
    task_id: OptionalText = Field(None, description="Generation task the track came from")
    title: Optional[str] = None
    prompt: Optional[str] = None
    generation_prompt: OptionalText = None
    tags: Optional[str] = None
    model_name: Optional[str] = None
    duration: Optional[float] = None
    audio_url: Optional[str] = None
    source_audio_url: Optional[str] = None
    stream_audio_url: Optional[str] = None
    source_stream_audio_url: Optional[str] = None
    image_url: Optional[str] = None
    source_image_url: Optional[str] = None
    create_time: Optional[Any] = None
    user: OptionalText = None
    deleted: bool = False
    audio_file: OptionalText = None
    image_file: OptionalText = None

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> Any:
        return None if value in ("", None) else value

    def summary(self) -> "TrackSummary":
        return TrackSummary(
            id=self.id,
            track_id=self.track_id or self.id,
            title=self.title or "Untitled",
            audio_url=self.audio_url,
            stream_audio_url=self.stream_audio_url,
            image_url=self.image_url,
            duration=self.duration,
            tags=self.tags,
            prompt=self.prompt,
            model_name=self.model_name,
            create_time=self.create_time,
        )


class RoomRecord(RecordBase):
    """Shared now-playing state"""
    current_track: OptionalText = None
    next_track: OptionalText = None
    current_start: OptionalText = None
    prompt: OptionalText = None
    active_request: Optional[str] = Field(None, description="In-flight generation request id")
    disable_generate: bool = False
    instrumental: bool = False

    @field_validator("active_request", mode="before")
    @classmethod
    def _active_request(cls, value: Any) -> Any:
        # Older rooms stored a boolean flag instead of the request id
        if value is True:
            return "legacy"
        if value in (False, "", None):
            return None
        return value


class GenerationRequestRecord(RecordBase):
    """One call to the external generation API"""
    user: OptionalText = None
    status: Literal["pending", "submitted", "failed"] = "pending"
    taskId: OptionalText = None
    idempotency_key: OptionalText = None
    error: Optional[str] = None
    customMode: bool = False
    instrumental: bool = False
    model: Optional[str] = None
    prompt: Optional[str] = None
    style: Optional[str] = None
    title: Optional[str] = None

    @property
    def generation_prompt(self) -> Optional[str]:
        return self.prompt or self.style


class GenerationCallbackRecord(RecordBase):
    code: Optional[int] = None
    msg: Optional[str] = None
    task_id: Optional[str] = None
    callbackType: Optional[str] = None
    data: Optional[Any] = None


class ExpandableRecord(RecordBase):
    """Record fetched with its track relation expanded"""
    expand: Dict[str, Any] = Field(default_factory=dict)

    @property
    def expanded_track(self) -> Optional[TrackRecord]:
        track = self.expand.get("track")
        return TrackRecord.model_validate(track) if isinstance(track, dict) else None


class ReactionRecord(ExpandableRecord):
    user: str
    track: str
    reaction: Literal["like", "dislike"]


class PlaylistRecord(RecordBase):
    user: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class PlaylistEntryRecord(ExpandableRecord):
    playlist: str
    track: str
    added_by: OptionalText = None


ItemType = TypeVar("ItemType")


class RecordPage(BaseModel, Generic[ItemType]):
    """One page of a backend list query"""
    page: int = 1
    perPage: int = 30
    totalItems: int = 0
    totalPages: int = 0
    items: List[ItemType] = Field(default_factory=list)


# Generation Schemas
class GenerationParams(BaseSchema):
    """Parameters forwarded to the generation API (validated separately)"""
    customMode: bool
    instrumental: bool
    model: str
    prompt: Optional[str] = None
    style: Optional[str] = None
    title: Optional[str] = None
    personaId: Optional[str] = None
    negativeTags: Optional[str] = None
    vocalGender: Optional[str] = None
    styleWeight: Optional[float] = None
    weirdnessConstraint: Optional[float] = None
    audioWeight: Optional[float] = None
    callBackUrl: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MusicTrackPayload(BaseSchema):
    """Track as delivered by the generation API webhook"""
    id: str
    audio_url: Optional[str] = None
    source_audio_url: Optional[str] = None
    stream_audio_url: Optional[str] = None
    source_stream_audio_url: Optional[str] = None
    image_url: Optional[str] = None
    source_image_url: Optional[str] = None
    prompt: Optional[str] = None
    model_name: Optional[str] = None
    title: Optional[str] = None
    tags: Optional[str] = None
    createTime: Optional[Any] = None
    duration: Optional[float] = None

    def to_track_fields(self) -> Dict[str, Any]:
        """Map onto track record fields, skipping values the payload left out"""
        fields = {
            "track_id": self.id,
            "title": self.title,
            "prompt": self.prompt,
            "tags": self.tags,
            "model_name": self.model_name,
            "duration": self.duration,
            "audio_url": self.audio_url,
            "source_audio_url": self.source_audio_url,
            "stream_audio_url": self.stream_audio_url,
            "source_stream_audio_url": self.source_stream_audio_url,
            "image_url": self.image_url,
            "source_image_url": self.source_image_url,
            "create_time": self.createTime,
        }
        return {key: value for key, value in fields.items() if value not in (None, "")}


class CallbackData(BaseSchema):
    callbackType: Optional[Literal["text", "first", "complete", "error"]] = None
    task_id: Optional[str] = None
    data: Optional[List[MusicTrackPayload]] = None


class CallbackPayload(BaseSchema):
    code: int
    msg: Optional[str] = None
    data: CallbackData


class CallbackAck(BaseModel):
    status: str
    taskId: Optional[str] = None


# API Request Schemas
class EnhanceRequest(BaseModel):
    prompt: Optional[str] = None


class EnhancedPrompt(BaseModel):
    """Custom-mode parameters produced by the AI gateway"""
    title: str = Field(..., max_length=100)
    style: str = Field(..., max_length=100)
    prompt: str = Field(..., max_length=5000)
    vocalGender: Optional[Literal["m", "f"]] = None


class ReactionRequest(BaseModel):
    trackId: str = Field(..., min_length=1)
    reaction: Literal["like", "dislike"]


class PlayRequest(BaseModel):
    trackId: Optional[str] = None


class RoomGenerateRequest(BaseModel):
    prompt: Optional[str] = None


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)


class PlaylistTrackAdd(BaseModel):
    trackId: str = Field(..., min_length=1)


class SetCookieRequest(BaseModel):
    cookie: Optional[str] = None


# API Response Schemas
class TrackSummary(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: str
    track_id: str
    title: str
    audio_url: Optional[str] = None
    stream_audio_url: Optional[str] = None
    image_url: Optional[str] = None
    duration: Optional[float] = None
    tags: Optional[str] = None
    prompt: Optional[str] = None
    model_name: Optional[str] = None
    create_time: Optional[Any] = None


class TrackListResponse(BaseModel):
    tracks: List[TrackSummary]
    page: int
    perPage: int
    totalItems: int
    totalPages: int


class RoomState(BaseModel):
    id: str
    current_track: Optional[TrackSummary] = None
    current_start: Optional[str] = None
    next_track: Optional[TrackSummary] = None
    prompt: Optional[str] = None
    active_request: Any = False
    created: Optional[str] = None
    updated: Optional[str] = None
