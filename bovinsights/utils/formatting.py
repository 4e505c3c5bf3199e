# bovinsights/utils/formatting.py
"""
Formatação de valores no padrão brasileiro (pt-BR / BRL).
"""
import datetime
from typing import Union

DateLike = Union[str, datetime.date, datetime.datetime]


def parse_date(value: DateLike) -> datetime.date:
    """Converte 'YYYY-MM-DD' (ou um timestamp ISO) em ``date``.

    Levanta ``ValueError`` para datas malformadas.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Data inválida: {value!r}")
    text = value.strip()
    # Timestamps do Supabase vêm como '2025-07-10T12:00:00+00:00'
    if len(text) > 10 and text[10] in "T ":
        text = text[:10]
    return datetime.date.fromisoformat(text)


def _brazilian_separators(text: str) -> str:
    return text.replace(",", "X").replace(".", ",").replace("X", ".")


def format_brl(value: float) -> str:
    """Formata um número como Real brasileiro (R$ 150.000,50)."""
    if value >= 0:
        return _brazilian_separators(f"R$ {value:,.2f}")
    return _brazilian_separators(f"-R$ {abs(value):,.2f}")


def format_number(value: float, decimals: int = 2) -> str:
    """1234.5 -> '1.234,50'"""
    return _brazilian_separators(f"{value:,.{decimals}f}")


def format_percent(value: float, decimals: int = 1) -> str:
    """Formata um percentual com vírgula decimal (ex: 23,5%)."""
    return f"{format_number(value, decimals)}%"


def format_weight(value: float) -> str:
    return f"{format_number(value, 1)} kg"


def format_arrobas(value: float) -> str:
    return f"{format_number(value, 2)} @"


def format_date(value: DateLike) -> str:
    """'2025-07-10' -> '10/07/2025'"""
    return parse_date(value).strftime("%d/%m/%Y")


def month_key(value: DateLike) -> str:
    """Chave de agrupamento mensal: '2025-07-10' -> '2025-07'"""
    return parse_date(value).strftime("%Y-%m")
