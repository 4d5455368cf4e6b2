from pydantic import BaseModel


class TokenData(BaseModel):
    """Identity carried by a validated bearer token"""

    user_id: str
    username: str
