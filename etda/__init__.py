"""
Módulo Principal da Aplicação (Application Factory)
"""

from flask import Flask, render_template
from werkzeug.middleware.proxy_fix import ProxyFix # Importação necessária para o Cloud Run
from config import Config

from .core.constants import MENUS, PAPEIS, STATUS
from .core.extensions import csrf, limiter, oauth, registrar_google
from .core import acesso
from .core.logger import get_logger

logger = get_logger(__name__)


def create_app(config_class=Config):
    """
    Cria e configura uma instância da aplicação Flask.
    """

    app = Flask(__name__,
                instance_relative_config=True,
                static_folder='static',
                template_folder='templates')

    # === CORREÇÃO HTTPS (Cloud Run) ===
    # Atrás do proxy, gera URLs com 'https://' (necessário no callback do Google)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # 1. Carrega a configuração
    app.config.from_object(config_class)

    # 2. Extensões
    csrf.init_app(app)
    limiter.init_app(app)
    oauth.init_app(app)
    registrar_google(app)

    # Injeta menus, rótulos e o usuário logado em todos os templates
    @app.context_processor
    def inject_globals():
        usuario = acesso.usuario_atual()
        menu = MENUS.get(usuario['role'], []) if usuario else []
        return dict(usuario=usuario, menu=menu, PAPEIS=PAPEIS, STATUS=STATUS)

    # 3. Blueprints (Módulos)
    from .auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/')

    # Os url_prefix ('/secretary', '/teacher', '/student') ficam em cada __init__.py
    from .secretaria import secretaria_bp
    app.register_blueprint(secretaria_bp)

    from .professor import professor_bp
    app.register_blueprint(professor_bp)

    from .aluno import aluno_bp
    app.register_blueprint(aluno_bp)

    # 4. Páginas de erro
    @app.errorhandler(403)
    def acesso_negado(e):
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def nao_encontrado(e):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def erro_interno(e):
        logger.error(f"Erro interno: {e}", exc_info=True)
        return render_template('errors/500.html'), 500

    # 5. Rota de Health Check
    @app.route("/health")
    def health_check():
        return "Servidor ETDA no ar!", 200

    return app
