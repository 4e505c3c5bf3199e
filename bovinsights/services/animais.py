# bovinsights/services/animais.py
"""
Animais identificados individualmente (por brinco).

O peso de entrada é fixo; o peso atual acompanha a última pesagem. GMD,
ganho total e arrobas atuais são calculados a cada leitura a partir das
pesagens do animal.
"""
import datetime
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bovinsights.core import db, metrics
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, UpstreamError, ValidationError
from bovinsights.core.models import EstatisticasAnimais
from bovinsights.services import lotes, pesagens
from bovinsights.utils.formatting import parse_date

logger = logging.getLogger(__name__)

TABLE = "animais"
SEXOS = ("Macho", "Fêmea")
RACAS = (
    "Nelore", "Aberdeen Angus", "Angus", "Brahman", "Brangus", "Guzerá", "Hereford", "Senepol",
    "Tabapuã", "Gir", "Charolês", "Limousin", "Simental", "Misto", "Outro",
)
TIPOS_ANIMAL = ("Engorda", "Terminação", "Recria", "Cria")
STATUS_ANIMAL = ("Ativo", "Vendido", "Morto", "Transferido")
FILTER_CHOICES = {"sexo": SEXOS, "raca": RACAS, "tipo": TIPOS_ANIMAL, "status": STATUS_ANIMAL}

EDITABLE_FIELDS = {
    "lote_id", "brinco", "nome", "sexo", "raca", "tipo", "data_entrada", "data_nascimento",
    "idade_meses", "peso_entrada", "peso_atual", "preco_arroba_compra", "valor_total_compra",
    "status", "observacoes",
}
REQUIRED = ("brinco", "sexo", "raca", "tipo", "data_entrada", "peso_entrada")
RULES = {
    "brinco": v.rule(v.require_text, "brinco", "Brinco"),
    "sexo": v.rule(v.require_choice, "sexo", "Sexo", choices=SEXOS),
    "raca": v.rule(v.require_choice, "raca", "Raça", choices=RACAS),
    "tipo": v.rule(v.require_choice, "tipo", "Tipo", choices=TIPOS_ANIMAL),
    "status": v.rule(v.require_choice, "status", "Status", choices=STATUS_ANIMAL),
    "data_entrada": v.rule(v.require_date, "data_entrada", "Data de entrada"),
    "data_nascimento": v.rule(v.require_date, "data_nascimento", "Data de nascimento"),
    "peso_entrada": v.rule(v.require_positive, "peso_entrada", "Peso de entrada"),
    "peso_atual": v.rule(v.require_positive, "peso_atual", "Peso atual"),
    "preco_arroba_compra": v.rule(v.require_positive, "preco_arroba_compra", "Preço da arroba"),
    "valor_total_compra": v.rule(v.require_non_negative, "valor_total_compra", "Valor total da compra"),
    "idade_meses": v.rule(v.require_non_negative, "idade_meses", "Idade (meses)"),
}


def with_details(animal: Dict[str, Any], weighings: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Anexa número de pesagens, última pesagem, ganho total, GMD e arrobas atuais."""
    ordered = sorted(weighings, key=lambda row: parse_date(row["data_pesagem"]))
    details = {
        "total_pesagens": len(ordered),
        "ultima_pesagem": ordered[-1]["data_pesagem"] if ordered else None,
        "ganho_total": None,
        "gmd": None,
    }
    if len(ordered) >= 2:
        first, last = ordered[0], ordered[-1]
        total_gain = metrics.gain(last["peso"], first["peso"])
        daily_gain = metrics.gmd(total_gain, metrics.days_between(last["data_pesagem"], first["data_pesagem"]))
        details["ganho_total"] = round(total_gain, 1)
        details["gmd"] = round(daily_gain, 3) if daily_gain is not None else None

    peso = animal.get("peso_atual") or animal.get("peso_entrada")
    details["arroba_atual"] = round(metrics.kg_to_arrobas(peso), 2) if peso else None
    return {**animal, **details}


def _weighings_by_animal(supabase_client: Client, user_id: str, animal_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
    if not animal_ids:
        return {}
    query = (
        supabase_client.table(pesagens.TABLE)
        .select("animal_id,peso,data_pesagem")
        .eq("usuario_id", user_id)
        .in_("animal_id", animal_ids)
        .order("data_pesagem", desc=False)
    )
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for row in db.fetch_rows(query, "buscar pesagens dos animais"):
        grouped.setdefault(row["animal_id"], []).append(row)
    return grouped


def _attach_details(supabase_client: Client, user_id: str, animals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    weighings = _weighings_by_animal(supabase_client, user_id, [a["id"] for a in animals])
    return [with_details(animal, weighings.get(animal["id"], [])) for animal in animals]


def _purchase_value(peso_entrada: Any, preco_arroba: Any) -> Optional[float]:
    if not (peso_entrada and preco_arroba):
        return None
    return round(metrics.kg_to_arrobas(float(peso_entrada)) * float(preco_arroba), 2)


def list_animals(supabase_client: Client, lot_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Animais do usuário, mais recentes primeiro; dentro de um lote, por brinco."""
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)
    if lot_id:
        query = query.eq("lote_id", lot_id).order("brinco", desc=False)
    else:
        query = query.order("created_at", desc=True)
    return _attach_details(supabase_client, user_id, db.fetch_rows(query, "listar animais"))


def search_animals(
    supabase_client: Client,
    query: Optional[str] = None,
    filters: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Busca por brinco ou nome (sem diferenciar maiúsculas).

    Filtros: ``lote_id``, ``sexo``, ``raca``, ``tipo`` e ``status``.
    """
    filters = filters or {}
    user_id = db.get_current_user_id(supabase_client)
    builder = supabase_client.table(TABLE).select("*").eq("usuario_id", user_id)
    if filters.get("lote_id"):
        builder = builder.eq("lote_id", filters["lote_id"])
    for name, choices in FILTER_CHOICES.items():
        value = filters.get(name)
        if not value:
            continue
        if value not in choices:
            raise ValidationError(f"Filtro '{name}' inválido: {value}")
        builder = builder.eq(name, value)

    animals = db.fetch_rows(builder.order("created_at", desc=True), "buscar animais")
    if query:
        needle = query.lower()
        animals = [
            a for a in animals
            if needle in (a.get("brinco") or "").lower() or needle in (a.get("nome") or "").lower()
        ]
    return _attach_details(supabase_client, user_id, animals)


def get_animal_by_id(supabase_client: Client, animal_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", animal_id).eq("usuario_id", user_id)
    animal = db.fetch_one(query, "buscar animal", "Animal não encontrado")
    return _attach_details(supabase_client, user_id, [animal])[0]


def create_animal(
    supabase_client: Client,
    data: Dict[str, Any],
    today: Optional[datetime.date] = None,
) -> Dict[str, Any]:
    """
    Cadastra o animal e registra a pesagem de entrada.

    O peso atual começa igual ao de entrada. Valor da compra e idade são
    calculados quando não informados.
    """
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["brinco"] = record["brinco"].strip()
    record["data_entrada"] = parse_date(record["data_entrada"]).isoformat()
    record["peso_entrada"] = round(float(record["peso_entrada"]), 1)
    record["peso_atual"] = record["peso_entrada"]
    record["lote_id"] = record.get("lote_id") or None
    record["status"] = record.get("status") or "Ativo"
    if not record.get("valor_total_compra"):
        record["valor_total_compra"] = _purchase_value(record["peso_entrada"], record.get("preco_arroba_compra"))
    if record.get("data_nascimento"):
        record["data_nascimento"] = parse_date(record["data_nascimento"]).isoformat()
        if not record.get("idade_meses"):
            record["idade_meses"] = metrics.age_in_months(record["data_nascimento"], today or datetime.date.today())
    record["usuario_id"] = user_id

    animal = db.write_one(supabase_client.table(TABLE).insert(record), "cadastrar animal")
    logger.info("Animal cadastrado: %s (brinco %s)", animal.get("id"), record["brinco"])

    pesagem_entrada = {
        "usuario_id": user_id,
        "animal_id": animal["id"],
        "lote_id": record["lote_id"],
        "peso": record["peso_entrada"],
        "data_pesagem": record["data_entrada"],
        "observacoes": "Peso de entrada",
    }
    try:
        db.execute(supabase_client.table(pesagens.TABLE).insert(pesagem_entrada), "registrar pesagem de entrada")
    except UpstreamError:
        # O animal já foi gravado; a pesagem de entrada pode ser lançada manualmente
        logger.warning("Pesagem de entrada do animal %s não foi registrada", animal["id"])

    return animal


def update_animal(
    supabase_client: Client,
    animal_id: str,
    data: Dict[str, Any],
    today: Optional[datetime.date] = None,
) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)

    for field in ("peso_entrada", "peso_atual"):
        if field in changes:
            changes[field] = round(float(changes[field]), 1)
    if "valor_total_compra" not in changes and ("peso_entrada" in changes or "preco_arroba_compra" in changes):
        current = get_animal_by_id(supabase_client, animal_id)
        valor = _purchase_value(
            changes.get("peso_entrada", current.get("peso_entrada")),
            changes.get("preco_arroba_compra", current.get("preco_arroba_compra")),
        )
        if valor is not None:
            changes["valor_total_compra"] = valor
    if changes.get("data_nascimento") and "idade_meses" not in changes:
        changes["idade_meses"] = metrics.age_in_months(changes["data_nascimento"], today or datetime.date.today())

    query = supabase_client.table(TABLE).update(changes).eq("id", animal_id).eq("usuario_id", user_id)
    return db.write_one(query, "atualizar animal", "Animal não encontrado")


def delete_animal(supabase_client: Client, animal_id: str) -> None:
    """Exclui o animal e todas as pesagens dele."""
    user_id = db.get_current_user_id(supabase_client)
    db.execute(
        supabase_client.table(pesagens.TABLE).delete().eq("animal_id", animal_id).eq("usuario_id", user_id),
        "excluir pesagens do animal",
    )
    query = supabase_client.table(TABLE).delete().eq("id", animal_id).eq("usuario_id", user_id)
    if not db.fetch_rows(query, "excluir animal"):
        raise NotFoundError("Animal não encontrado")
    logger.info("Animal %s excluído com suas pesagens", animal_id)


def transfer_animal(supabase_client: Client, animal_id: str, lot_id: str) -> Dict[str, Any]:
    """Move o animal para outro lote do mesmo usuário."""
    if not lot_id:
        raise ValidationError("O campo 'Lote' é obrigatório.")
    lotes.get_lot_by_id(supabase_client, lot_id)
    animal = update_animal(supabase_client, animal_id, {"lote_id": lot_id})
    logger.info("Animal %s transferido para o lote %s", animal_id, lot_id)
    return animal


def animal_statistics(supabase_client: Client) -> EstatisticasAnimais:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("sexo,peso_atual,status").eq("usuario_id", user_id)
    animals = db.fetch_rows(query, "calcular estatísticas dos animais")
    if not animals:
        return EstatisticasAnimais()

    ativos = [a for a in animals if a.get("status") == "Ativo"]
    pesos = [a["peso_atual"] for a in ativos if (a.get("peso_atual") or 0) > 0]
    return EstatisticasAnimais(
        total_animais=len(animals),
        total_ativos=len(ativos),
        machos=sum(1 for a in ativos if a.get("sexo") == "Macho"),
        femeas=sum(1 for a in ativos if a.get("sexo") == "Fêmea"),
        peso_medio=round(sum(pesos) / len(pesos), 1) if pesos else 0.0,
    )
