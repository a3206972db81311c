from typing import Any, Dict, Optional

from pydantic import BaseModel, SecretStr


class VaultedCard(BaseModel):
    model_config = {"frozen": True}

    user_id: str
    profile_id: str
    card_id: str
    payment_token: SecretStr
    brand: str = "unknown"
    last4: str = ""
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None
    is_default: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "VaultedCard":
        return cls(**{k: row.get(k) for k in cls.model_fields if row.get(k) is not None})

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump()
        row["payment_token"] = self.payment_token.get_secret_value()
        return row

    def public_dict(self) -> Dict[str, Any]:
        """Représentation exposée au navigateur: jamais le jeton permanent."""
        return self.model_dump(exclude={"payment_token", "user_id", "profile_id"})
