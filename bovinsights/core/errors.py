# bovinsights/core/errors.py
"""
Erros de domínio do Bovinsights.

Os serviços levantam estes erros; a camada HTTP converte cada um em um
status e em um corpo ``{"error": mensagem}``.
"""


class BovinsightsError(Exception):
    """Erro base da aplicação."""

    status_code = 500
    default_message = "Erro interno do servidor"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(BovinsightsError):
    """Nenhuma sessão de usuário ativa."""

    status_code = 401
    default_message = "Usuário não autenticado"


class ValidationError(BovinsightsError):
    """Campo obrigatório ausente ou inválido. A mensagem é exibida ao usuário."""

    status_code = 400
    default_message = "Dados inválidos"


class NotFoundError(BovinsightsError):
    """Registro solicitado não existe (ou não pertence ao usuário)."""

    status_code = 404
    default_message = "Registro não encontrado"


class UpstreamError(BovinsightsError):
    """Falha no Supabase ou em uma API de terceiros."""

    status_code = 500
    default_message = "Não foi possível concluir a operação. Tente novamente mais tarde."
