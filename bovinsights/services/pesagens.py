# bovinsights/services/pesagens.py
"""
Pesagens individuais e agregadas por lote.

Ganho, GMD e peso anterior nunca são gravados: são recalculados a cada
leitura a partir da pesagem anterior do mesmo animal.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bovinsights.core import db, metrics
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, UpstreamError
from bovinsights.core.models import EstatisticasPesagem, GmdAnimal
from bovinsights.services import lotes
from bovinsights.utils.formatting import parse_date

logger = logging.getLogger(__name__)

TABLE = "pesagens"
DERIVED_FIELDS = ("peso_anterior", "ganho", "gmd", "dias_desde_ultima")
EDITABLE_FIELDS = {"animal_id", "lote_id", "peso", "data_pesagem", "observacoes"}

REQUIRED = ("animal_id", "peso", "data_pesagem")
RULES = {
    "animal_id": v.rule(v.require_text, "animal_id", "Animal"),
    "peso": v.rule(v.require_positive, "peso", "Peso"),
    "data_pesagem": v.rule(v.require_date, "data_pesagem", "Data da pesagem"),
}


def _filtered_query(supabase_client: Client, user_id: str, filters: Dict[str, Any]):
    query = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)
    if filters.get("lote_id"):
        query = query.eq("lote_id", filters["lote_id"])
    if filters.get("animal_id"):
        query = query.eq("animal_id", filters["animal_id"])
    if filters.get("data_inicio"):
        query = query.gte("data_pesagem", v.require_date(filters, "data_inicio", "Data inicial"))
    if filters.get("data_fim"):
        query = query.lte("data_pesagem", v.require_date(filters, "data_fim", "Data final"))
    return query.order("data_pesagem", desc=False)


def _enrich_with_history(supabase_client: Client, user_id: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Calcula os campos derivados usando o histórico completo dos animais envolvidos."""
    animal_ids = sorted({row["animal_id"] for row in rows if row.get("animal_id")})
    if not animal_ids:
        return metrics.weight_history_with_gmd(rows)

    query = (
        supabase_client.table(TABLE)
        .select("id,animal_id,peso,data_pesagem")
        .eq("usuario_id", user_id)
        .in_("animal_id", animal_ids)
    )
    history = db.fetch_rows(query, "buscar histórico de pesagens")
    derived_by_id = {row["id"]: row for row in metrics.weight_history_with_gmd(history)}

    enriched = []
    for row in rows:
        derived = derived_by_id.get(row["id"])
        if derived is None:
            enriched.append({**row, **metrics.derive_weighing_fields(row, None)})
        else:
            enriched.append({**row, **{k: derived[k] for k in DERIVED_FIELDS}})
    return enriched


def list_weighings(supabase_client: Client, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Lista pesagens em ordem cronológica com ganho e GMD.

    Filtros aceitos: ``lote_id``, ``animal_id``, ``data_inicio``, ``data_fim``.
    """
    filters = filters or {}
    user_id = db.get_current_user_id(supabase_client)
    rows = db.fetch_rows(_filtered_query(supabase_client, user_id, filters), "listar pesagens")

    # Filtro por lote ou período pode esconder a pesagem anterior de um animal
    if filters.get("lote_id") or filters.get("data_inicio") or filters.get("data_fim"):
        return _enrich_with_history(supabase_client, user_id, rows)
    return metrics.weight_history_with_gmd(rows)


def list_weighings_by_animal(supabase_client: Client, animal_id: str) -> List[Dict[str, Any]]:
    return list_weighings(supabase_client, {"animal_id": animal_id})


def list_weighings_by_lot(supabase_client: Client, lot_id: str) -> List[Dict[str, Any]]:
    return list_weighings(supabase_client, {"lote_id": lot_id})


def get_weighing_by_id(supabase_client: Client, weighing_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", weighing_id).eq("usuario_id", user_id)
    pesagem = db.fetch_one(query, "buscar pesagem", "Pesagem não encontrada")

    previous = None
    if pesagem.get("animal_id"):
        previous_query = (
            supabase_client.table(TABLE)
            .select("peso,data_pesagem")
            .eq("usuario_id", user_id)
            .eq("animal_id", pesagem["animal_id"])
            .lt("data_pesagem", pesagem["data_pesagem"])
            .order("data_pesagem", desc=True)
            .limit(1)
        )
        found = db.fetch_rows(previous_query, "buscar pesagem anterior")
        previous = found[0] if found else None

    return {**pesagem, **metrics.derive_weighing_fields(pesagem, previous)}


def _lot_of_animal(supabase_client: Client, animal_id: str) -> Optional[str]:
    query = supabase_client.table("animais").select("lote_id").eq("id", animal_id).limit(1)
    rows = db.fetch_rows(query, "buscar lote do animal")
    return rows[0].get("lote_id") if rows else None


def create_weighing(supabase_client: Client, data: Dict[str, Any]) -> Dict[str, Any]:
    """Registra uma pesagem individual e atualiza o peso atual do animal."""
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["peso"] = round(float(record["peso"]), 1)
    record["data_pesagem"] = parse_date(record["data_pesagem"]).isoformat()
    if not record.get("lote_id"):
        record["lote_id"] = _lot_of_animal(supabase_client, record["animal_id"])
    record["usuario_id"] = user_id

    pesagem = db.write_one(supabase_client.table(TABLE).insert(record), "criar pesagem")
    logger.info("Pesagem %s registrada para o animal %s", pesagem.get("id"), record["animal_id"])

    try:
        db.execute(
            supabase_client.table("animais").update({"peso_atual": record["peso"]}).eq("id", record["animal_id"]),
            "atualizar peso do animal",
        )
    except UpstreamError:
        # A pesagem já foi gravada; o peso atual do animal se corrige na próxima pesagem
        logger.warning("Peso atual do animal %s não foi atualizado", record["animal_id"])

    return pesagem


def create_lot_weighing(
    supabase_client: Client,
    lot_id: str,
    total_weight: float,
    head_count: int,
    weighing_date: str,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Pesagem agregada do lote inteiro, sem animais identificados.

    O peso médio vira o peso de referência do lote e a pesagem entra no
    histórico do lote (mais recente primeiro).
    """
    user_id = db.get_current_user_id(supabase_client)
    data = {"lote_id": lot_id, "peso_total": total_weight, "quantidade_animais": head_count, "data_pesagem": weighing_date}
    v.validate_fields(
        data,
        {
            "lote_id": v.rule(v.require_text, "lote_id", "Lote"),
            "peso_total": v.rule(v.require_positive, "peso_total", "Peso total"),
            "quantidade_animais": v.rule(v.require_positive, "quantidade_animais", "Quantidade de animais"),
            "data_pesagem": v.rule(v.require_date, "data_pesagem", "Data da pesagem"),
        },
        required=data.keys(),
    )

    lote = lotes.get_lot_by_id(supabase_client, lot_id)
    peso_medio = round(float(total_weight) / float(head_count), 1)
    entry = {
        "data": parse_date(weighing_date).isoformat(),
        "peso_total": float(total_weight),
        "quantidade_animais": int(head_count),
        "peso_medio": peso_medio,
        "observacoes": notes or None,
    }
    historico = sorted(
        [*(lote.get("historico_pesagens") or []), entry],
        key=lambda item: parse_date(item["data"]),
        reverse=True,
    )

    changes = {
        "peso_medio_animal": peso_medio,
        "quantidade_total": int(head_count),
        "historico_pesagens": historico,
    }
    query = supabase_client.table(lotes.TABLE).update(changes).eq("id", lot_id).eq("usuario_id", user_id)
    updated = db.write_one(query, "registrar pesagem do lote", "Lote não encontrado")
    logger.info("Pesagem agregada do lote %s: %s kg médios (%s animais)", lot_id, peso_medio, head_count)
    return {"peso_medio": peso_medio, "lote": lotes.with_stats(updated)}


def lot_weight_series(lote: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Peso médio do lote ao longo do tempo, do mais antigo ao mais recente.

    O primeiro ponto é a média de entrada (se houver data de entrada); depois
    vem cada pesagem agregada do histórico. Ganho e GMD são calculados sobre
    o ponto anterior da série.
    """
    points = []
    peso_entrada = metrics.average_weight(lote.get("peso_total_entrada"), lote.get("quantidade_total"))
    if peso_entrada and lote.get("data_entrada"):
        points.append({"data_pesagem": parse_date(lote["data_entrada"]).isoformat(), "peso": round(peso_entrada, 1)})
    historico = sorted(lote.get("historico_pesagens") or [], key=lambda item: parse_date(item["data"]))
    for item in historico:
        points.append({"data_pesagem": parse_date(item["data"]).isoformat(), "peso": item["peso_medio"]})

    series = []
    for i, point in enumerate(points):
        previous = points[i - 1] if i > 0 and points[i - 1]["data_pesagem"] < point["data_pesagem"] else None
        series.append({**point, **metrics.derive_weighing_fields(point, previous)})
    return series


def lot_weight_series_by_id(supabase_client: Client, lot_id: str) -> List[Dict[str, Any]]:
    return lot_weight_series(lotes.get_lot_by_id(supabase_client, lot_id))


def update_weighing(supabase_client: Client, weighing_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)
    if "peso" in changes:
        changes["peso"] = round(float(changes["peso"]), 1)

    query = supabase_client.table(TABLE).update(changes).eq("id", weighing_id).eq("usuario_id", user_id)
    return db.write_one(query, "atualizar pesagem", "Pesagem não encontrada")


def delete_weighing(supabase_client: Client, weighing_id: str) -> None:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).delete().eq("id", weighing_id).eq("usuario_id", user_id)
    if not db.fetch_rows(query, "excluir pesagem"):
        raise NotFoundError("Pesagem não encontrada")
    logger.info("Pesagem %s excluída", weighing_id)


def animal_gmd_summary(supabase_client: Client, animal_id: str) -> GmdAnimal:
    """GMD geral do animal entre a primeira e a última pesagem."""
    user_id = db.get_current_user_id(supabase_client)
    query = (
        supabase_client.table(TABLE)
        .select("peso,data_pesagem")
        .eq("usuario_id", user_id)
        .eq("animal_id", animal_id)
        .order("data_pesagem", desc=False)
    )
    rows = db.fetch_rows(query, "calcular GMD do animal")
    if len(rows) < 2:
        return GmdAnimal(total_pesagens=len(rows))

    first, last = rows[0], rows[-1]
    total_gain = metrics.gain(last["peso"], first["peso"])
    days = metrics.days_between(last["data_pesagem"], first["data_pesagem"])
    daily_gain = metrics.gmd(total_gain, days)
    return GmdAnimal(
        total_pesagens=len(rows),
        ganho_total=round(total_gain, 1),
        periodo_dias=days,
        gmd=round(daily_gain, 3) if daily_gain is not None else None,
    )


def weighing_statistics(supabase_client: Client) -> EstatisticasPesagem:
    user_id = db.get_current_user_id(supabase_client)
    query = (
        supabase_client.table(TABLE)
        .select("peso,data_pesagem")
        .eq("usuario_id", user_id)
        .order("data_pesagem", desc=True)
    )
    rows = db.fetch_rows(query, "calcular estatísticas de pesagens")
    if not rows:
        return EstatisticasPesagem()

    pesos = [row["peso"] for row in rows]
    return EstatisticasPesagem(
        total_pesagens=len(rows),
        peso_medio=round(sum(pesos) / len(pesos), 1),
        maior_peso=max(pesos),
        menor_peso=min(pesos),
        ultima_pesagem=rows[0]["data_pesagem"],
    )
