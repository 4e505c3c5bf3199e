# bovinsights/services/tarefas.py
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bovinsights.core import db
from bovinsights.core import validation as v
from bovinsights.core.errors import NotFoundError, ValidationError
from bovinsights.utils.formatting import parse_date

logger = logging.getLogger(__name__)

TABLE = "tarefas"
TASK_CATEGORIES = ("Manejo", "Pesagem", "Sanidade", "Financeiro", "Geral")
TASK_STATUS = ("pending", "completed")

EDITABLE_FIELDS = {"title", "description", "category", "due_date", "due_time", "status"}
REQUIRED = ("title", "due_date")
RULES = {
    "title": v.rule(v.require_text, "title", "Título"),
    "due_date": v.rule(v.require_date, "due_date", "Data"),
    "category": v.rule(v.require_choice, "category", "Categoria", choices=TASK_CATEGORIES),
    "status": v.rule(v.require_choice, "status", "Status", choices=TASK_STATUS),
}


def _validate_time(data: Dict[str, Any]) -> None:
    value = data.get("due_time")
    if not value:
        return
    parts = str(value).split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        raise ValidationError("O campo 'Horário' deve estar no formato HH:MM.")
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValidationError("O campo 'Horário' deve estar no formato HH:MM.")


def task_sort_key(task: Dict[str, Any]):
    """Data de vencimento, depois horário; tarefas sem horário vão para o fim do dia."""
    due_time = task.get("due_time")
    return (str(task.get("due_date") or ""), due_time is None, str(due_time or ""))


def list_tasks(supabase_client: Client, status: Optional[str] = None) -> List[Dict[str, Any]]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("user_id", user_id)
    if status:
        if status not in TASK_STATUS:
            raise ValidationError(f"Status de tarefa inválido: {status}")
        query = query.eq("status", status)
    query = query.order("due_date", desc=False).order("due_time", desc=False, nullsfirst=False)
    # Horários nulos sempre por último, mesmo que o servidor ordene diferente
    return sorted(db.fetch_rows(query, "listar tarefas"), key=task_sort_key)


def get_task_by_id(supabase_client: Client, task_id: str) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).select("*").eq("id", task_id).eq("user_id", user_id)
    return db.fetch_one(query, "buscar tarefa", "Tarefa não encontrada")


def create_task(supabase_client: Client, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    v.validate_fields(data, RULES, REQUIRED)
    _validate_time(data)

    record = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    record["title"] = record["title"].strip()
    record["due_date"] = parse_date(record["due_date"]).isoformat()
    record["due_time"] = record.get("due_time") or None
    record["category"] = record.get("category") or "Geral"
    record["status"] = "pending"
    record["user_id"] = user_id

    tarefa = db.write_one(supabase_client.table(TABLE).insert(record), "criar tarefa")
    logger.info("Tarefa criada: %s (%s)", tarefa.get("id"), record["title"])
    return tarefa


def update_task(supabase_client: Client, task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    user_id = db.get_current_user_id(supabase_client)
    changes = {k: val for k, val in data.items() if k in EDITABLE_FIELDS}
    v.validate_fields(changes, RULES, REQUIRED, partial_update=True)
    _validate_time(changes)
    if "due_time" in changes:
        changes["due_time"] = changes["due_time"] or None

    query = supabase_client.table(TABLE).update(changes).eq("id", task_id).eq("user_id", user_id)
    return db.write_one(query, "atualizar tarefa", "Tarefa não encontrada")


def complete_task(supabase_client: Client, task_id: str) -> Dict[str, Any]:
    return update_task(supabase_client, task_id, {"status": "completed"})


def reopen_task(supabase_client: Client, task_id: str) -> Dict[str, Any]:
    return update_task(supabase_client, task_id, {"status": "pending"})


def delete_task(supabase_client: Client, task_id: str) -> None:
    user_id = db.get_current_user_id(supabase_client)
    query = supabase_client.table(TABLE).delete().eq("id", task_id).eq("user_id", user_id)
    if not db.fetch_rows(query, "excluir tarefa"):
        raise NotFoundError("Tarefa não encontrada")
    logger.info("Tarefa %s excluída", task_id)
