# bovinsights/services/relatorios.py
"""
Relatórios do rebanho.

Os números vêm de funções do Postgres chamadas via RPC; aqui eles só viram
dataclasses. Falhas remotas chegam ao usuário como mensagens do domínio.
"""
import logging
from typing import List, Optional

from supabase import Client

from bovinsights.core import db
from bovinsights.core.errors import UpstreamError
from bovinsights.core.models import DesempenhoLote, PesagemDesempenho, RebanhoAtual
from bovinsights.utils.formatting import DateLike, parse_date

logger = logging.getLogger(__name__)


def _call_report(supabase_client: Client, procedure: str, params: dict, error_message: str) -> list:
    try:
        rows = db.call_procedure(supabase_client, procedure, params)
    except Exception as e:
        logger.error("Erro ao executar %s: %s", procedure, e)
        raise UpstreamError(error_message) from e
    return rows or []


def get_current_herd_report(supabase_client: Client) -> List[RebanhoAtual]:
    user_id = db.get_current_user_id(supabase_client)
    rows = _call_report(
        supabase_client,
        "get_relatorio_rebanho_atual",
        {"user_id_param": user_id},
        "Não foi possível carregar os dados do rebanho",
    )
    return [RebanhoAtual.from_row(row) for row in rows]


def get_weighing_performance_report(
    supabase_client: Client,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> List[PesagemDesempenho]:
    """Pesagens do período com ganho e GMD. Sem datas, a função remota usa todo o histórico."""
    user_id = db.get_current_user_id(supabase_client)
    params = {
        "user_id_param": user_id,
        "data_inicio_param": parse_date(start_date).isoformat() if start_date else None,
        "data_fim_param": parse_date(end_date).isoformat() if end_date else None,
    }
    rows = _call_report(
        supabase_client,
        "get_relatorio_pesagens_desempenho",
        params,
        "Não foi possível carregar os dados de pesagem.",
    )
    return [PesagemDesempenho.from_row(row) for row in rows]


def get_lot_performance_report(supabase_client: Client) -> List[DesempenhoLote]:
    user_id = db.get_current_user_id(supabase_client)
    rows = _call_report(
        supabase_client,
        "get_relatorio_desempenho_lote",
        {"user_id_param": user_id},
        "Não foi possível carregar o desempenho dos lotes",
    )
    return [DesempenhoLote.from_row(row) for row in rows]
