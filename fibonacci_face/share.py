import time

from pydantic import BaseModel

from . import config

SHARED, COPIED, FAILED = "shared", "copied", "failed"


class SharePayload(BaseModel):
    title: str
    text: str
    url: str

    @property
    def clipboard_text(self):
        return f"{self.text}\n{self.url}"


def build_share_payload(score, url=None):
    return SharePayload(
        title=config.SHARE_CONFIG['title'],
        text=config.SHARE_CONFIG['text'].format(score=score),
        url=url or config.BASE_URL,
    )


class ShareLabel:
    """
    Caption of the share button.

    A native share keeps the default caption. The clipboard fallback shows
    "Copied!" or "Failed!" for a couple of seconds, then reverts.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._text = config.SHARE_CONFIG['label_default']
        self._until = 0.0

    def record(self, outcome):
        if outcome == SHARED:
            self.reset()
            return
        if outcome not in (COPIED, FAILED):
            raise ValueError(f"Unknown share outcome: {outcome!r}")
        self._text = config.SHARE_CONFIG['label_copied' if outcome == COPIED else 'label_failed']
        self._until = self._clock() + config.SHARE_CONFIG['revert_seconds']

    def reset(self):
        self._text = config.SHARE_CONFIG['label_default']
        self._until = 0.0

    @property
    def text(self):
        if self._until and self._clock() >= self._until:
            self.reset()
        return self._text
