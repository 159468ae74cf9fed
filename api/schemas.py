from pydantic import BaseModel
from typing import Dict, Optional


class ImageInfo(BaseModel):
    filename: Optional[str] = None
    mime_type: str
    size: int
    preview_url: Optional[str] = None


class SessionView(BaseModel):
    state: str
    image: Optional[ImageInfo] = None
    result: Optional[Dict] = None
    error: Optional[str] = None
    inline_error: Optional[str] = None
    details_visible: bool
    camera_open: bool
    share_label: str

    @classmethod
    def from_controller(cls, controller):
        snapshot = controller.snapshot
        image = None
        if snapshot.image is not None:
            image = ImageInfo(
                filename=snapshot.image.filename,
                mime_type=snapshot.image.mime_type,
                size=snapshot.image.size,
                preview_url=controller.previews.url_for(snapshot.preview_handle) if snapshot.preview_handle else None,
            )
        return cls(
            state=snapshot.state.value,
            image=image,
            result=snapshot.result.to_wire() if snapshot.result is not None else None,
            error=snapshot.error,
            inline_error=snapshot.inline_error,
            details_visible=snapshot.details_visible,
            camera_open=snapshot.camera_open,
            share_label=controller.share_label.text,
        )


class ShareView(BaseModel):
    title: str
    text: str
    url: str
    clipboard_text: str
    label: str


class ShareOutcome(BaseModel):
    outcome: str


class ShareLabelView(BaseModel):
    label: str


class LoadingMessage(BaseModel):
    state: str
    message: Optional[str] = None
