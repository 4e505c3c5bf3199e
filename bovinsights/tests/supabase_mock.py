# bovinsights/tests/supabase_mock.py
from unittest.mock import MagicMock

from supabase import Client

# Métodos do query builder que devolvem o próprio builder
CHAINABLE = (
    "select", "insert", "update", "delete", "eq", "neq", "order", "limit",
    "ilike", "is_", "in_", "gte", "lte", "lt", "gt",
)

USER_ID = "user-123"


def make_supabase_client(user_id=USER_ID):
    """Cliente Supabase falso com sessão de ``user_id`` (ou sem sessão, se None)."""
    client = MagicMock(spec=Client)
    query = MagicMock()
    for method in CHAINABLE:
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query

    client.auth = MagicMock()
    user = MagicMock(id=user_id) if user_id else None
    client.auth.get_user.return_value = MagicMock(user=user)
    return client, query


def respond_with(query, *datasets):
    """Cada ``execute()`` seguinte devolve o próximo conjunto de linhas."""
    query.execute.side_effect = [MagicMock(data=data) for data in datasets]
