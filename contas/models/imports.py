"""Input shapes for bill creation.

Manual entries (``BillFormData``) and import drafts (``ImportedBillReview``)
are normalized into a single ``BillDraft`` before any business logic runs.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from contas.models import reais_to_centavos
from contas.models.bill import BillType


class ImportFile(BaseModel):
    name: str
    content_type: str
    data: bytes


class BillDraft(BaseModel):
    title: str
    description: str = ""
    beneficiary: str = ""
    amount: int  # centavos
    due_date: date
    category: str = ""
    cost_center: str = ""
    type: BillType = BillType.VARIABLE
    installments: int = 1
    barcode: str = ""
    is_recurring: bool = False
    file: ImportFile | None = None


class BillFormData(BaseModel):
    title: str
    description: str = ""
    beneficiary: str = ""
    amount: int  # centavos
    due_date: date
    category: str = ""
    cost_center: str = ""
    type: BillType = BillType.VARIABLE
    installments: int = 1
    barcode: str = ""
    is_recurring: bool = False

    def to_draft(self) -> BillDraft:
        return BillDraft(**self.model_dump())


class ImportedBillData(BaseModel):
    """Structured extraction returned by the document parser."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    beneficiary: str
    amount: float  # reais, as returned by the parser
    due_date: date = Field(alias="dueDate")
    barcode: str | None = None


class ImportStatus(str, Enum):
    PARSING = "parsing"
    SUCCESS = "success"
    ERROR = "error"


class ImportedBillReview(BaseModel):
    file: ImportFile
    id: str
    status: ImportStatus = ImportStatus.PARSING
    data: ImportedBillData | None = None
    category: str = ""
    cost_center: str = ""
    type: BillType = BillType.VARIABLE
    installments: int = 2
    is_recurring: bool = False
    error_message: str | None = None
    is_duplicate: bool = False
    auto_filled: bool = False

    def to_draft(self) -> BillDraft:
        if self.status != ImportStatus.SUCCESS or self.data is None:
            raise ValueError(f"Import draft {self.id} has no parsed data")
        return BillDraft(
            title=self.data.title,
            description=f"Importado do arquivo: {self.file.name}",
            beneficiary=self.data.beneficiary,
            amount=reais_to_centavos(self.data.amount),
            due_date=self.data.due_date,
            category=self.category,
            cost_center=self.cost_center,
            type=self.type,
            installments=self.installments,
            barcode=self.data.barcode or "",
            is_recurring=self.is_recurring,
            file=self.file,
        )
