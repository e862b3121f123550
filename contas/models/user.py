from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel

from contas.models.bank_detail import BankDetail
from contas.models.bill import Attachment, HistoryEntry


class UserType(str, Enum):
    PJ = "PJ"
    CLT = "CLT"
    PARTNER = "PARCEIRO"


class Phone(BaseModel):
    id: str = ""
    number: str
    phone_type: Literal["CELL", "LANDLINE"] = "CELL"
    has_whatsapp: bool = False


class Address(BaseModel):
    cep: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""


class User(BaseModel):
    id: str = ""
    type: UserType
    start_date: str = ""  # 'YYYY-MM-DD'
    end_date: str | None = None  # 'YYYY-MM-DD'
    company_ids: list[str] = []

    full_name: str
    cpf: str
    birth_date: str = ""
    email: str = ""
    phones: list[Phone] = []
    personal_attachments: list[Attachment] = []
    bank_details: list[BankDetail] = []

    # PJ / Partner
    company_name: str | None = None
    cnpj: str | None = None
    company_address: Address | None = None
    home_address: Address | None = None

    # CLT
    pis: str | None = None
    mother_name: str | None = None
    father_name: str | None = None
    job_function: str | None = None

    portal_key: str | None = None
    history: list[HistoryEntry] = []


class Admin(BaseModel):
    id: str = ""
    full_name: str
    cpf: str = ""
    birth_date: str = ""
    email: str = ""
    end_date: str | None = None
