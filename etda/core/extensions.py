"""
Módulo Central de Extensões.
Evita importações circulares centralizando as instâncias das extensões.
"""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect
from authlib.integrations.flask_client import OAuth

# 1. Limiter (Rate Limiting)
# O storage vem de RATELIMIT_STORAGE_URI (memória por padrão, Redis em produção).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"]
)

# 2. CSRF Protection (todos os formulários POST das três áreas)
csrf = CSRFProtect()

# 3. OAuth (Authlib) - login Google
oauth = OAuth()


def registrar_google(app):
    """Registra o provedor Google no Authlib com as credenciais do app."""
    client_id = app.config.get('GOOGLE_CLIENT_ID')
    client_secret = app.config.get('GOOGLE_CLIENT_SECRET')

    if not client_id or not client_secret:
        print("AVISO: GOOGLE_CLIENT_ID ou GOOGLE_CLIENT_SECRET não definidos.")
        return

    oauth.register(
        name='google',
        client_id=client_id,
        client_secret=client_secret,
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={
            'scope': 'openid email profile'
        }
    )
