from datetime import date, datetime
from zoneinfo import ZoneInfo

from contas.models.bank_detail import PixKeyType
from contas.models.bill import BillStatus, BillType
from contas.models.user import UserType

SP_TZ = ZoneInfo("America/Sao_Paulo")

TYPE_LABELS = {
    BillType.VARIABLE: "Variável",
    BillType.INSTALLMENT: "Parcelada",
    BillType.MONTHLY: "Mensal",
    BillType.ANNUAL: "Anual",
}

STATUS_LABELS = {
    BillStatus.UPCOMING: "A Vencer",
    BillStatus.OVERDUE: "Vencida",
    BillStatus.PAID: "Paga",
    BillStatus.POSTPONED: "Postergada",
}

PIX_KEY_LABELS = {
    PixKeyType.CPF: "CPF",
    PixKeyType.CNPJ: "CNPJ",
    PixKeyType.EMAIL: "E-mail",
    PixKeyType.PHONE: "Telefone",
    PixKeyType.RANDOM: "Chave Aleatória",
}

USER_TYPE_LABELS = {UserType.PJ: "PJ", UserType.CLT: "CLT", UserType.PARTNER: "Parceiro"}

DEFAULT_CATEGORIES = ["Moradia", "Alimentação", "Transporte", "Lazer", "Saúde"]
DEFAULT_COST_CENTERS = ["Pessoal", "Trabalho"]
DEFAULT_JOB_FUNCTIONS = ["Desenvolvedor", "Designer", "Gerente de Projetos", "Analista de RH"]


def now() -> datetime:
    return datetime.now(SP_TZ)


def today() -> date:
    return now().date()


def format_date(value: date | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def parse_date(text: str) -> date | None:
    """Parse 'dd/mm/YYYY' or 'YYYY-MM-DD'. Returns None on invalid input."""
    text = (text or "").strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None
