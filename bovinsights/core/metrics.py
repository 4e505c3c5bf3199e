# bovinsights/core/metrics.py
"""
Métricas zootécnicas e financeiras derivadas.

Funções puras: não acessam o Supabase. Um resultado ``None`` significa
"indefinido" (sem pesagem anterior, divisão por zero, etc.) e nunca é
tratado como erro.
"""
import bisect
from typing import Any, Dict, Iterable, List, Optional, Union

from bovinsights.utils.formatting import DateLike, parse_date

# Objetivo de margem das vendas (%), usado na criação e na atualização
OBJETIVO_MARGEM = 25.0

# 1 arroba = 15 kg de carcaça
ARROBA_KG = 15.0
# Rendimento de carcaça padrão: 50% do peso vivo, ou seja, 30 kg vivos por @
RENDIMENTO_CARCACA = 0.5

# Mês médio, para idade em meses
DIAS_POR_MES = 30.44

Number = Union[int, float]


def gain(current: Number, previous: Optional[Number]) -> Optional[float]:
    """Ganho de peso entre duas pesagens. Indefinido sem pesagem anterior."""
    if previous is None or current is None:
        return None
    return current - previous


def days_between(current_date: DateLike, previous_date: DateLike) -> int:
    return (parse_date(current_date) - parse_date(previous_date)).days


def gmd(weight_gain: Optional[Number], days: Optional[int]) -> Optional[float]:
    """Ganho Médio Diário (kg/dia). Indefinido sem ganho ou com 0 dias."""
    if weight_gain is None or not days or days <= 0:
        return None
    return weight_gain / days


def margin_percent(profit: Number, revenue: Number) -> Optional[float]:
    """Lucro como percentual da receita. Indefinido com receita zero."""
    if not revenue:
        return None
    return profit / revenue * 100


def objective_reached(margin: Optional[Number], threshold: Number = OBJETIVO_MARGEM) -> bool:
    if margin is None:
        return False
    return margin >= threshold


def kg_to_arrobas(live_weight_kg: Number, carcass_yield: float = RENDIMENTO_CARCACA) -> float:
    """Peso vivo (kg) -> arrobas de carcaça."""
    return live_weight_kg * carcass_yield / ARROBA_KG


def arrobas_to_kg(arrobas: Number, carcass_yield: float = RENDIMENTO_CARCACA) -> float:
    """Arrobas de carcaça -> peso vivo (kg)."""
    return arrobas * ARROBA_KG / carcass_yield


def sale_revenue(arrobas: Number, price_per_arroba: Number) -> float:
    return arrobas * price_per_arroba


def gross_profit(revenue: Number, cost: Number) -> float:
    return revenue - cost


def sale_figures(live_weight_kg: Number, price_per_arroba: Number, total_cost: Number) -> Dict[str, Any]:
    """Campos derivados gravados junto com uma venda."""
    arrobas = kg_to_arrobas(live_weight_kg)
    revenue = sale_revenue(arrobas, price_per_arroba)
    profit = gross_profit(revenue, total_cost)
    margin = margin_percent(profit, revenue)
    return {
        "peso_total_arrobas": round(arrobas, 2),
        "valor_total_venda": round(revenue, 2),
        "lucro_bruto": round(profit, 2),
        "margem_percentual": round(margin, 2) if margin is not None else None,
        "atingiu_objetivo": objective_reached(margin),
    }


# --- Lotes ---

def occupancy_percent(head_count: Number, capacity: Number) -> int:
    if not capacity or capacity <= 0:
        return 0
    return round(head_count / capacity * 100)


def average_weight(total_weight: Optional[Number], head_count: Optional[Number]) -> Optional[float]:
    if not total_weight or not head_count:
        return None
    return total_weight / head_count


def lot_entry_costs(
    total_entry_weight: Number,
    price_per_arroba: Number,
    head_count: Optional[Number] = None,
    freight: Optional[Number] = None,
    commission: Optional[Number] = None,
) -> Dict[str, float]:
    """Custo de aquisição de um lote a partir do peso de entrada e do preço da @."""
    animals_value = sale_revenue(kg_to_arrobas(total_entry_weight), price_per_arroba)
    total_cost = animals_value + (freight or 0) + (commission or 0)
    cost_per_head = total_cost / head_count if head_count else 0
    return {
        "valor_animais": round(animals_value, 2),
        "custo_total": round(total_cost, 2),
        "custo_por_cabeca": round(cost_per_head, 2),
    }


def age_in_months(birth_date: DateLike, today: DateLike) -> int:
    """Meses completos desde o nascimento. Datas futuras contam como zero."""
    return max(0, int(days_between(today, birth_date) // DIAS_POR_MES))


def per_unit(total: Number, units: Optional[Number]) -> Optional[float]:
    """Rateio de um total (por cabeça, por arroba). Indefinido sem unidades."""
    if not units:
        return None
    return total / units


# --- Pesagens ---

def weight_history_with_gmd(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Enriquece pesagens com peso anterior, ganho, dias e GMD.

    A pesagem anterior é a mais recente do mesmo animal com data estritamente
    menor. Pesagens sem ``animal_id`` (agregadas de lote) ficam com os campos
    derivados indefinidos. A ordem de entrada é preservada.
    """
    rows = list(rows)
    by_animal: Dict[Any, List[Dict[str, Any]]] = {}
    for row in rows:
        if row.get("animal_id"):
            by_animal.setdefault(row["animal_id"], []).append(row)

    previous_of: Dict[int, Dict[str, Any]] = {}
    for animal_rows in by_animal.values():
        ordered = sorted(animal_rows, key=lambda r: parse_date(r["data_pesagem"]))
        dates = [parse_date(r["data_pesagem"]) for r in ordered]
        for row in ordered:
            idx = bisect.bisect_left(dates, parse_date(row["data_pesagem"]))
            if idx > 0:
                previous_of[id(row)] = ordered[idx - 1]

    enriched = []
    for row in rows:
        enriched.append({**row, **derive_weighing_fields(row, previous_of.get(id(row)))})
    return enriched


def derive_weighing_fields(row: Dict[str, Any], previous: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if previous is None:
        return {"peso_anterior": None, "ganho": None, "gmd": None, "dias_desde_ultima": None}

    weight_gain = gain(row["peso"], previous["peso"])
    days = days_between(row["data_pesagem"], previous["data_pesagem"])
    daily_gain = gmd(weight_gain, days)
    return {
        "peso_anterior": previous["peso"],
        "ganho": round(weight_gain, 1),
        "gmd": round(daily_gain, 3) if daily_gain is not None else None,
        "dias_desde_ultima": days,
    }
