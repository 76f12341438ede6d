from pydantic import BaseModel, field_validator


class FulfillRequest(BaseModel):
    session_id: str

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("session_id cannot be empty")
        return v
