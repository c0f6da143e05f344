from unittest.mock import patch

from etda.core.constants import COL_USUARIOS, COL_PROFESSORES, COL_ALUNOS


def _google(oauth_mock, email, nome='Fulano de Tal'):
    oauth_mock.google.authorize_access_token.return_value = {'access_token': 'token'}
    oauth_mock.google.userinfo.return_value = {
        'email': email,
        'name': nome,
        'sub': 'google-123',
        'picture': 'https://foto.exemplo/avatar.png',
    }


@patch('etda.auth.routes.oauth')
def test_callback_usuario_cadastrado_entra_no_dashboard(oauth_mock, client, escola):
    _google(oauth_mock, 'Paulo@Escola.com.br')
    response = client.get('/google/callback')

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/teacher/')
    with client.session_transaction() as sess:
        assert sess['usuario']['id'] == 'prof1'
        assert sess['usuario']['role'] == 'teacher'

    usuario = escola.doc(COL_USUARIOS, 'prof1')
    assert usuario['google_id'] == 'google-123'
    assert usuario['avatar_url'] == 'https://foto.exemplo/avatar.png'
    assert 'ultimo_acesso' in usuario


@patch('etda.auth.routes.oauth')
def test_callback_email_desconhecido_vai_ao_primeiro_acesso(oauth_mock, client, escola):
    _google(oauth_mock, 'novo@escola.com.br')
    response = client.get('/google/callback')

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/primeiro-acesso')
    with client.session_transaction() as sess:
        assert 'usuario' not in sess
        assert sess['perfil_google']['email'] == 'novo@escola.com.br'


@patch('etda.auth.routes.oauth')
def test_callback_papel_invalido_volta_ao_login(oauth_mock, client, escola):
    escola.inserir(COL_USUARIOS, 'estranho', name='Estranho', email='estranho@escola.com.br', role='zelador')
    _google(oauth_mock, 'estranho@escola.com.br')
    response = client.get('/google/callback', follow_redirects=True)

    assert "perfil válido" in response.data.decode('utf-8')
    with client.session_transaction() as sess:
        assert 'usuario' not in sess


@patch('etda.auth.routes.oauth')
def test_callback_falha_do_google(oauth_mock, client, escola):
    oauth_mock.google.authorize_access_token.side_effect = Exception("state mismatch")
    response = client.get('/google/callback', follow_redirects=True)
    assert "Não foi possível concluir o login" in response.data.decode('utf-8')


def test_primeiro_acesso_sem_perfil_google(client):
    response = client.get('/primeiro-acesso')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/login')


def _perfil_pendente(client, email='novo@escola.com.br'):
    with client.session_transaction() as sess:
        sess['perfil_google'] = {'email': email, 'nome': 'Nova Pessoa', 'google_id': 'g-9', 'avatar_url': None}


def test_primeiro_acesso_senha_errada(client, escola):
    _perfil_pendente(client)
    response = client.post('/primeiro-acesso', data={
        'nome': 'Nova Pessoa', 'papel': 'teacher', 'senha_admin': 'errada'
    })
    assert response.status_code == 200
    assert "Senha do admin inválida" in response.data.decode('utf-8')
    assert len(escola.dados[COL_USUARIOS]) == 4


def test_primeiro_acesso_sem_senha_admin_configurada(app, client, escola):
    app.config['ADMIN_PASSWORD'] = None
    _perfil_pendente(client)
    response = client.post('/primeiro-acesso', data={
        'nome': 'Nova Pessoa', 'papel': 'teacher', 'senha_admin': 'qualquer'
    })
    assert response.status_code == 200
    assert "Senha admin não configurada" in response.data.decode('utf-8')
    assert len(escola.dados[COL_USUARIOS]) == 4
    with client.session_transaction() as sess:
        assert 'usuario' not in sess


def test_primeiro_acesso_professor(client, escola):
    _perfil_pendente(client)
    response = client.post('/primeiro-acesso', data={
        'nome': 'Nova Pessoa', 'papel': 'teacher', 'senha_admin': 'senha-admin-teste'
    })
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/teacher/')

    with client.session_transaction() as sess:
        novo_id = sess['usuario']['id']
        assert 'perfil_google' not in sess

    assert escola.doc(COL_USUARIOS, novo_id)['email'] == 'novo@escola.com.br'
    assert escola.doc(COL_PROFESSORES, novo_id)['subject_ids'] == []


def test_primeiro_acesso_aluno_cria_matricula_vazia(client, escola):
    _perfil_pendente(client, 'aluna.nova@escola.com.br')
    client.post('/primeiro-acesso', data={
        'nome': 'Aluna Nova', 'papel': 'student', 'senha_admin': 'senha-admin-teste'
    })
    with client.session_transaction() as sess:
        novo_id = sess['usuario']['id']
    assert escola.doc(COL_ALUNOS, novo_id)['class_id'] is None


def test_logout_limpa_sessao(escola, logar_como):
    client = logar_como('sec1')
    response = client.get('/logout')
    assert response.status_code == 302
    with client.session_transaction() as sess:
        assert 'usuario' not in sess
