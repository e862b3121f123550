from __future__ import annotations

from pydantic import BaseModel

from contas.models.bank_detail import BankDetail
from contas.models.bill import Attachment


class Company(BaseModel):
    id: str = ""
    name: str
    cnpj: str = ""
    cep: str = ""
    address: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    phone: str = ""
    key: str = ""
    attachments: list[Attachment] = []
    bank_details: list[BankDetail] = []
