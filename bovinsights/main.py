# bovinsights/main.py
import logging

from flask import Flask

from bovinsights import config
from bovinsights.api import register_error_handlers
from bovinsights.api.proxy import proxy
from bovinsights.api.records import records
from bovinsights.api.reports import reports

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """
    Cria a aplicação Flask.

    ``overrides`` entra em ``app.config``; ``SUPABASE_CLIENT_FACTORY`` troca a
    criação do cliente Supabase (usado nos testes).
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config.from_mapping(SUPABASE_CLIENT_FACTORY=None)
    if overrides:
        app.config.update(overrides)

    app.register_blueprint(proxy, url_prefix='/api')
    app.register_blueprint(records, url_prefix='/api')
    app.register_blueprint(reports, url_prefix='/api')
    register_error_handlers(app)

    @app.route('/health')
    def health():
        return {"status": "ok"}

    logger.info("Aplicação Bovinsights pronta")
    return app


# Ponto de entrada para o Gunicorn: gunicorn bovinsights.main:wsgi_app
wsgi_app = create_app()
