"""
Rotas do Módulo de Autenticação

Gerencia as rotas de login (Google), primeiro acesso e logout, e o
redirecionamento de cada papel para o seu dashboard.
"""

from flask import (
    render_template,
    redirect,
    url_for,
    session,
    flash,
    current_app
)
from google.api_core.exceptions import GoogleAPICallError

from . import services as auth_services
from . import auth_bp
from .forms import PrimeiroAcessoForm
from etda.core.acesso import usuario_atual, url_dashboard
from etda.core.erros import ErroAcesso, ErroValidacao, formatar_erro_backend
from etda.core.extensions import oauth, limiter
from etda.core.logger import get_logger

logger = get_logger(__name__)


def _entrar(dados_usuario: dict):
    session.pop('perfil_google', None)
    session['usuario'] = dados_usuario
    return redirect(url_dashboard(dados_usuario['role']))


# === ROTAS DE LOGIN/LOGOUT ===

@auth_bp.route('/')
def index():
    usuario = usuario_atual()
    if usuario:
        return redirect(url_dashboard(usuario['role']))
    return redirect(url_for('auth_bp.login'))


@auth_bp.route('/login')
def login():
    """ Exibe a página de login. """
    usuario = usuario_atual()
    if usuario:
        return redirect(url_dashboard(usuario['role']))

    return render_template('login.html')


@auth_bp.route('/google/login')
@limiter.limit("10 per minute")
def google_login():
    """ Redireciona para o Google. """
    redirect_uri = url_for('auth_bp.google_callback', _external=True)
    return oauth.google.authorize_redirect(redirect_uri)


@auth_bp.route('/google/callback')
def google_callback():
    """ Retorno do Google após login. """
    try:
        token = oauth.google.authorize_access_token()
        user_info = oauth.google.userinfo(token=token)

        if not user_info:
            raise ValueError("Falha ao obter dados do Google.")

        google_profile = {
            'email': user_info.get('email'),
            'nome': user_info.get('name'),
            'google_id': user_info.get('sub'),
            'avatar_url': user_info.get('picture'),
        }

        dados_usuario = auth_services.autenticar_usuario(google_profile)

    except ErroAcesso as e:
        flash(str(e), "error")
        return redirect(url_for('auth_bp.login'))
    except Exception as e:
        logger.error(f"Erro no login: {e}", exc_info=True)
        flash("Não foi possível concluir o login. Tente novamente.", "error")
        return redirect(url_for('auth_bp.login'))

    if dados_usuario is None:
        session['perfil_google'] = google_profile
        return redirect(url_for('auth_bp.primeiro_acesso'))

    return _entrar(dados_usuario)


@auth_bp.route('/logout')
def logout():
    session.pop('usuario', None)
    session.pop('perfil_google', None)
    return redirect(url_for('auth_bp.login'))


# === PRIMEIRO ACESSO ===

@auth_bp.route('/primeiro-acesso', methods=['GET', 'POST'])
def primeiro_acesso():
    """
    Cadastro de um e-mail Google ainda desconhecido.
    Protegido pela senha do admin (ADMIN_PASSWORD).
    """
    perfil_google = session.get('perfil_google')
    if not perfil_google:
        return redirect(url_for('auth_bp.login'))

    form = PrimeiroAcessoForm()
    if not form.is_submitted():
        form.nome.data = perfil_google.get('nome')

    if form.validate_on_submit():
        try:
            if not auth_services.senha_admin_confere(form.senha_admin.data, current_app.config.get('ADMIN_PASSWORD')):
                logger.warning(f"Senha admin inválida no primeiro acesso: {perfil_google.get('email')}")
                flash("Senha do admin inválida.", "error")
                return render_template('primeiro_acesso.html', form=form, email=perfil_google.get('email'))

            dados_usuario = auth_services.registrar_primeiro_acesso(
                perfil_google, form.nome.data, form.papel.data
            )
            flash("Cadastro realizado com sucesso!", "success")
            return _entrar(dados_usuario)

        except ErroValidacao as e:
            flash(str(e), "error")
        except GoogleAPICallError as e:
            logger.error(f"Erro ao cadastrar primeiro acesso: {e}", exc_info=True)
            flash(formatar_erro_backend(e, "Falha ao cadastrar."), "error")

    return render_template('primeiro_acesso.html', form=form, email=perfil_google.get('email'))
