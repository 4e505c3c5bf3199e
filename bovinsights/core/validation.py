# bovinsights/core/validation.py
"""
Validações locais antes de gravar no Supabase.

São apenas indicativas: as constraints do banco continuam sendo a
autoridade. As mensagens são exibidas ao usuário como estão.
"""
from functools import partial
from typing import Any, Callable, Dict, Iterable

from bovinsights.core.errors import ValidationError
from bovinsights.utils.formatting import parse_date


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_text(data: Dict[str, Any], field: str, label: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"O campo '{label}' é obrigatório.")
    return value.strip()


def _to_number(value: Any, label: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"O campo '{label}' deve ser numérico.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"O campo '{label}' deve ser numérico.")


def require_positive(data: Dict[str, Any], field: str, label: str) -> float:
    value = data.get(field)
    if _is_blank(value):
        raise ValidationError(f"O campo '{label}' é obrigatório.")
    number = _to_number(value, label)
    if number <= 0:
        raise ValidationError(f"O campo '{label}' deve ser maior que zero.")
    return number


def require_non_negative(data: Dict[str, Any], field: str, label: str) -> float:
    value = data.get(field)
    if _is_blank(value):
        raise ValidationError(f"O campo '{label}' é obrigatório.")
    number = _to_number(value, label)
    if number < 0:
        raise ValidationError(f"O campo '{label}' não pode ser negativo.")
    return number


def require_date(data: Dict[str, Any], field: str, label: str) -> str:
    value = data.get(field)
    if _is_blank(value):
        raise ValidationError(f"O campo '{label}' é obrigatório.")
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise ValidationError(f"O campo '{label}' deve ser uma data válida (AAAA-MM-DD).")


def require_choice(data: Dict[str, Any], field: str, label: str, choices: Iterable[str]) -> str:
    choices = list(choices)
    value = data.get(field)
    if value not in choices:
        raise ValidationError(f"O campo '{label}' deve ser um de: {', '.join(choices)}.")
    return value


def rule(check: Callable, field: str, label: str, **kwargs) -> Callable[[Dict[str, Any]], Any]:
    """Prende campo e rótulo a uma das funções ``require_*``."""
    return partial(check, field=field, label=label, **kwargs)


def validate_fields(
    data: Dict[str, Any],
    rules: Dict[str, Callable],
    required: Iterable[str] = (),
    partial_update: bool = False,
) -> None:
    """
    Aplica as regras aos campos de ``data``.

    Campos obrigatórios são sempre conferidos na criação; em uma atualização
    parcial, só quando enviados. Campos opcionais só são conferidos quando
    preenchidos.
    """
    if partial_update and not data:
        raise ValidationError("Nenhum campo informado para atualização.")
    required = set(required)
    for field, check in rules.items():
        if field in required:
            if not partial_update or field in data:
                check(data)
        elif not _is_blank(data.get(field)):
            check(data)
