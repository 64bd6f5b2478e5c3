from pydantic import BaseModel, ConfigDict


class EvidenceUpload(BaseModel):
    """Raw file handed to the evidence service before validation."""
    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)
