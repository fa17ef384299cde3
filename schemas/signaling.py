from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Literal, Optional


class Presence(BaseModel):
    """Per-connection presence. Serialized to clients as ``{userName?, video, audio}``."""
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(default=None, alias="userName")
    video: bool = True
    audio: bool = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Outcome(BaseModel):
    ok: bool = True
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "Outcome":
        return cls(ok=False, error=error)


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CheckUserRequest(_Inbound):
    room_id: str = Field(alias="roomId")
    user_name: str = Field(alias="userName")


class JoinRoomRequest(_Inbound):
    room_id: str = Field(alias="roomId")
    user_name: str = Field(alias="userName")


class CallUserRequest(_Inbound):
    user_to_call: str = Field(alias="userToCall")
    from_: Any = Field(default=None, alias="from")
    signal: Any = None


class AcceptCallRequest(_Inbound):
    to: str
    signal: Any = None


class SendMessageRequest(_Inbound):
    room_id: str = Field(alias="roomId")
    msg: Any = None
    sender: Any = None


class LeaveRoomRequest(_Inbound):
    room_id: str = Field(alias="roomId")
    leaver: Optional[str] = None


class ToggleMediaRequest(_Inbound):
    room_id: str = Field(alias="roomId")
    switch_target: Literal["video", "audio"] = Field(alias="switchTarget")


class PingResponse(BaseModel):
    success: bool = True
