# app/schemas/token.py
from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str  # "sub" is the acting party id (host or creator)
    exp: int  # Standard claim for expiration time

    model_config = {"from_attributes": True}
