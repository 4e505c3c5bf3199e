# bovinsights/core/db.py
import logging
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from bovinsights.config import SUPABASE_URL, SUPABASE_KEY
from bovinsights.core.errors import NotFoundError, UnauthenticatedError, UpstreamError

logger = logging.getLogger(__name__)


def get_supabase_client(access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> Client:
    """
    Retorna uma instância do cliente Supabase.

    Com ``access_token`` o cliente fica vinculado à sessão do usuário, e as
    consultas passam pelas políticas de RLS em nome dele.
    """
    client = create_client(SUPABASE_URL, SUPABASE_KEY)
    if access_token:
        try:
            client.auth.set_session(access_token, refresh_token or "")
        except Exception as e:
            logger.warning("Sessão do Supabase rejeitada: %s", e)
            raise UnauthenticatedError("Sessão inválida ou expirada.") from e
    return client


def get_current_user(supabase_client: Client):
    """Retorna o usuário da sessão atual ou levanta ``UnauthenticatedError``."""
    try:
        response = supabase_client.auth.get_user()
    except Exception as e:
        logger.warning("Erro ao obter usuário da sessão: %s", e)
        raise UnauthenticatedError() from e

    user = getattr(response, "user", None) if response else None
    if user is None:
        raise UnauthenticatedError()
    return user


def get_current_user_id(supabase_client: Client) -> str:
    return get_current_user(supabase_client).id


def execute(query, action: str):
    """Executa uma consulta do query builder; falhas viram ``UpstreamError``."""
    try:
        return query.execute()
    except Exception as e:
        logger.error("Erro ao %s no Supabase: %s", action, e)
        raise UpstreamError() from e


def fetch_rows(query, action: str) -> List[Dict[str, Any]]:
    response = execute(query, action)
    return response.data or []


def fetch_one(query, action: str, not_found_message: str = None) -> Dict[str, Any]:
    """Primeira linha do resultado; nenhuma linha levanta ``NotFoundError``."""
    rows = fetch_rows(query.limit(1), action)
    if not rows:
        raise NotFoundError(not_found_message)
    return rows[0]


def write_one(query, action: str, not_found_message: str = None) -> Dict[str, Any]:
    """Executa insert/update e retorna a linha gravada."""
    rows = fetch_rows(query, action)
    if not rows:
        raise NotFoundError(not_found_message)
    return rows[0]


def call_procedure(supabase_client: Client, name: str, params: Dict[str, Any]):
    """Chama uma função remota (RPC) do Postgres e retorna os dados crus."""
    logger.debug("Chamando RPC %s com %s", name, params)
    response = supabase_client.rpc(name, params).execute()
    return response.data
