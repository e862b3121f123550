from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class PixKeyType(str, Enum):
    CPF = "CPF"
    CNPJ = "CNPJ"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    RANDOM = "RANDOM"


class BankDetail(BaseModel):
    id: str = ""
    bank_name: str
    agency: str
    account: str
    pix_key_type: PixKeyType = PixKeyType.RANDOM
    pix_key: str = ""
    is_active: bool = False
    created_at: datetime | None = None
    deactivated_at: datetime | None = None
