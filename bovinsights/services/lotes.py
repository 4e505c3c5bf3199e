# bovinsights/services/lotes.py
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bovinsights.core import db, metrics
from bovinsights.core import validation as v
from bovinsights.core.errors import ValidationError

logger = logging.getLogger(__name__)

TABLE = "lotes"
STATUS_LOTE = ("ativo", "inativo", "manutencao", "vendido")
TIPOS_LOTE = ("cria", "recria", "engorda", "terminacao")

# Colunas que o usuário pode gravar diretamente
EDITABLE_FIELDS = {
    "nome", "data_entrada", "quantidade_total", "peso_total_entrada", "preco_arroba_compra",
    "frete", "comissao", "fornecedor", "capacidade_maxima", "localizacao", "tipo_lote",
    "status", "observacoes", "peso_medio_animal",
}
COST_INPUTS = ("peso_total_entrada", "preco_arroba_compra", "quantidade_total", "frete", "comissao")

REQUIRED = ("nome", "capacidade_maxima")
RULES = {
    "nome": v.rule(v.require_text, "nome", "Nome do lote"),
    "capacidade_maxima": v.rule(v.require_positive, "capacidade_maxima", "Capacidade máxima"),
    "data_entrada": v.rule(v.require_date, "data_entrada", "Data de entrada"),
    "quantidade_total": v.rule(v.require_positive, "quantidade_total", "Quantidade de animais"),
    "peso_total_entrada": v.rule(v.require_positive, "peso_total_entrada", "Peso total de entrada"),
    "preco_arroba_compra": v.rule(v.require_positive, "preco_arroba_compra", "Preço da arroba"),
    "frete": v.rule(v.require_non_negative, "frete", "Frete"),
    "comissao": v.rule(v.require_non_negative, "comissao", "Comissão"),
    "status": v.rule(v.require_choice, "status", "Status", choices=STATUS_LOTE),
    "tipo_lote": v.rule(v.require_choice, "tipo_lote", "Tipo de lote", choices=TIPOS_LOTE),
}


def with_stats(lote: Dict[str, Any]) -> Dict[str, Any]:
    """Anexa total de animais, peso médio e ocupação. O lote é a referência, não os animais."""
    total_animais = lote.get("quantidade_total") or 0
    peso_medio = lote.get("peso_medio_animal") or metrics.average_weight(
        lote.get("peso_total_entrada"), lote.get("quantidade_total")
    ) or 0
    return {
        **lote,
        "total_animais": total_animais,
        "peso_medio": round(peso_medio, 1),
        "ocupacao_percentual": metrics.occupancy_percent(total_animais, lote.get("capacidade_maxima") or 0),
    }


def _entry_costs(data: Dict[str, Any]) -> Dict[str, Any]:
    """Custos de entrada, quando há peso e preço da @."""
    if not (data.get("peso_total_entrada") and data.get("preco_arroba_compra")):
        return {}
    return metrics.lot_entry_costs(
        float(data["peso_total_entrada"]),
        float(data["preco_arroba_compra"]),
        head_count=data.get("quantidade_total"),
        freight=data.get("frete"),
        commission=data.get("comissao"),
    )


def _entry_average_weight(data: Dict[str, Any]) -> Dict[str, Any]:
    peso_medio = metrics.average_weight(data.get("peso_total_entrada"), data.get("quantidade_total"))
    return {"peso_medio_animal": round(peso_medio, 1)} if peso_medio else {}


def list_lots(supabase_client: Client) -> List[Dict[str, Any]]:
    """Lista os lotes do usuário, mais recentes primeiro."""
    user_id = db.get_current_user_id(supabase_client)
    query = (
        supabase_client.table(TABLE)
        .select("*")
        .eq("usuario_id", user_id)
        .order("created_at", desc=True)
    )
    return [with_stats(lote) for lote in db.fetch_rows(query, "listar lotes")]


def search_lots(supabase_client: Client, query: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
    user_id = db.get_current_user_id(supabase_client)
    builder = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)
    if query:
        builder = builder.ilike("nome", f"%{query}%")
    if status:
        if status not in STATUS_LOTE:
            raise ValidationError(f"Status de lote inválido: {status}")
        builder = builder.eq("status", status)
    rows = db.fetch_rows(builder.order("created_at", desc=True), "buscar lotes")
    return [with_stats(lote) for lote in rows]


def get_lot_by_id(supabase_client: Client, lot_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", lot_id).eq("usuario_id", user_id)
    return with_stats(db.fetch_one(query, "buscar lote", "Lote não encontrado"))


def create_lot(supabase_client: Client, data: Dict[str, Any]) -> Dict[str, Any]:
    """Registra a entrada de um novo lote, calculando os custos de aquisição."""
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["nome"] = record["nome"].strip()
    record.setdefault("status", "ativo")
    record.update(_entry_costs(record))
    record.update(_entry_average_weight(record))
    record["usuario_id"] = user_id

    lote = db.write_one(supabase_client.table(TABLE).insert(record), "criar lote")
    logger.info("Lote criado: %s (%s)", lote.get("id"), lote.get("nome"))
    return with_stats(lote)


def update_lot(supabase_client: Client, lot_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)

    if any(k in changes for k in COST_INPUTS):
        current = get_lot_by_id(supabase_client, lot_id)
        merged = {k: changes.get(k, current.get(k)) for k in COST_INPUTS}
        changes.update(_entry_costs(merged))
        # O peso médio pesado do lote só muda quando a própria entrada muda
        if "peso_total_entrada" in changes or "quantidade_total" in changes:
            changes.update(_entry_average_weight(merged))

    query = supabase_client.table(TABLE).update(changes).eq("id", lot_id).eq("usuario_id", user_id)
    lote = db.write_one(query, "atualizar lote", "Lote não encontrado")
    return with_stats(lote)


def deactivate_lot(supabase_client: Client, lot_id: str) -> Dict[str, Any]:
    """Lotes nunca são apagados: a exclusão apenas os marca como inativos."""
    lote = update_lot(supabase_client, lot_id, {"status": "inativo"})
    logger.info("Lote %s marcado como inativo", lot_id)
    return lote
