import unittest
from unittest import mock

import pytest

from etda.core.constants import (
    COL_USUARIOS, COL_ALUNOS, COL_BIMESTRES, COL_NOTAS, COL_PRESENCAS, ALUNO, APROVADO, RECUPERACAO,
)
from etda.core.database import set_db
from etda.core.erros import ErroAcesso, ErroValidacao
from etda.professor import services

from conftest import FakeFirestore


@pytest.fixture
def professor(escola, logar_como):
    return logar_como('prof1')


# === SERVICE LAYER ===

class TestValidarContexto(unittest.TestCase):

    def setUp(self):
        self.db = FakeFirestore()
        set_db(self.db)
        self.db.inserir(COL_BIMESTRES, 'bim1', subject_id='mat', status='active')
        self.db.inserir(COL_BIMESTRES, 'bim2', subject_id='mat', status='closed')
        self.db.inserir(COL_BIMESTRES, 'bim3', subject_id='por', status='active')
        self.professor = {'email': 'paulo@escola.com.br', 'subject_ids': ['mat']}

    def tearDown(self):
        set_db(None)

    def test_disciplina_nao_atribuida(self):
        with self.assertRaises(ErroAcesso):
            services.validar_contexto(self.professor, 'por')

    def test_bimestre_de_outra_disciplina(self):
        with self.assertRaises(ErroValidacao):
            services.validar_contexto(self.professor, 'mat', 'bim3')

    def test_bimestre_encerrado_bloqueia_lancamento(self):
        self.assertEqual(services.validar_contexto(self.professor, 'mat', 'bim2')['id'], 'bim2')
        with self.assertRaises(ErroValidacao):
            services.validar_contexto(self.professor, 'mat', 'bim2', exigir_ativo=True)

    def test_contexto_valido(self):
        self.assertEqual(services.validar_contexto(self.professor, 'mat', 'bim1', exigir_ativo=True)['id'], 'bim1')
        self.assertIsNone(services.validar_contexto(self.professor, 'mat'))


def _professor(db):
    return services.carregar_professor('prof1')


def test_salvar_notas_cria_e_calcula(escola):
    gravadas = services.salvar_notas(_professor(escola), 'mat', 'bim1', {
        'aluno1': {'grade1': '7,5', 'grade2': '8', 'absences': '2'},
        'aluno2': {'grade1': '', 'grade2': '', 'absences': ''},
    })
    assert gravadas == 1

    nota = escola.doc(COL_NOTAS, 'aluno1_bim1')
    assert nota['average'] == 7.75
    assert nota['status'] == APROVADO
    assert nota['absences'] == 2
    assert nota['subject_id'] == 'mat'
    assert escola.doc(COL_NOTAS, 'aluno2_bim1') is None


def test_salvar_notas_atualiza_somente_o_que_mudou(escola):
    professor = _professor(escola)
    services.salvar_notas(professor, 'mat', 'bim1', {'aluno1': {'grade1': '4', 'grade2': '4', 'absences': '0'}})
    criada_em = escola.doc(COL_NOTAS, 'aluno1_bim1')['created_at']

    assert services.salvar_notas(professor, 'mat', 'bim1', {'aluno1': {'grade1': '4', 'grade2': '4', 'absences': '0'}}) == 0
    assert services.salvar_notas(professor, 'mat', 'bim1', {'aluno1': {'grade1': '4', 'grade2': '3', 'absences': '0'}}) == 1

    nota = escola.doc(COL_NOTAS, 'aluno1_bim1')
    assert nota['status'] == RECUPERACAO
    assert nota['created_at'] == criada_em


def test_salvar_notas_campo_vazio_vale_zero(escola):
    services.salvar_notas(_professor(escola), 'mat', 'bim1', {'aluno1': {'grade1': '6', 'grade2': '', 'absences': ''}})
    nota = escola.doc(COL_NOTAS, 'aluno1_bim1')
    assert nota['grade2'] == 0
    assert nota['average'] == 3.0


def test_salvar_notas_invalidas(escola):
    with pytest.raises(ErroValidacao):
        services.salvar_notas(_professor(escola), 'mat', 'bim1', {'aluno1': {'grade1': '11', 'grade2': '5', 'absences': '0'}})
    assert escola.doc(COL_NOTAS, 'aluno1_bim1') is None


def test_salvar_notas_sem_bimestre(escola):
    with pytest.raises(ErroValidacao):
        services.salvar_notas(_professor(escola), 'mat', '', {})


def test_planilha_notas_filtra_turma(escola):
    services.salvar_notas(_professor(escola), 'mat', 'bim1', {'aluno1': {'grade1': '9', 'grade2': '9', 'absences': '1'}})
    linhas = services.planilha_notas('mat', 'bim1', 'turmaA')
    assert [l['aluno']['id'] for l in linhas] == ['aluno1']
    assert linhas[0]['lancada'] is True
    assert linhas[0]['average'] == 9

    todas = services.planilha_notas('mat', 'bim1')
    assert [l['aluno']['name'] for l in todas] == ['Ana Aluna', 'Bruno Aluno']
    assert todas[1]['lancada'] is False


def test_salvar_presencas_e_regravar(escola):
    professor = _professor(escola)
    assert services.salvar_presencas(professor, 'mat', 'bim1', '2025-03-10', ['aluno1', 'aluno2'], {'aluno1'}) == 2
    assert escola.doc(COL_PRESENCAS, 'aluno1_mat_bim1_2025-03-10')['present'] is True
    assert escola.doc(COL_PRESENCAS, 'aluno2_mat_bim1_2025-03-10')['present'] is False

    services.salvar_presencas(professor, 'mat', 'bim1', '2025-03-10', ['aluno1', 'aluno2'], {'aluno1', 'aluno2'})
    assert len(escola.dados[COL_PRESENCAS]) == 2
    assert escola.doc(COL_PRESENCAS, 'aluno2_mat_bim1_2025-03-10')['present'] is True


def test_salvar_notas_ignora_aluno_fora_da_planilha(escola):
    gravadas = services.salvar_notas(_professor(escola), 'mat', 'bim1', {
        'aluno1': {'grade1': '7', 'grade2': '7', 'absences': '0'},
        'aluno2': {'grade1': '7', 'grade2': '7', 'absences': '0'},
        'fantasma': {'grade1': '10', 'grade2': '10', 'absences': '0'},
    }, 'turmaA')
    assert gravadas == 1
    assert set(escola.dados[COL_NOTAS]) == {'aluno1_bim1'}


def test_salvar_presencas_ignora_aluno_fora_da_planilha(escola):
    gravadas = services.salvar_presencas(
        _professor(escola), 'mat', 'bim1', '2025-03-10', ['aluno1', 'aluno2', 'fantasma'], {'fantasma'}, 'turmaA'
    )
    assert gravadas == 1
    assert set(escola.dados[COL_PRESENCAS]) == {'aluno1_mat_bim1_2025-03-10'}


def test_salvar_presencas_em_lotes(escola):
    for i in range(5):
        escola.inserir(COL_USUARIOS, f'extra{i}', name=f'Extra {i}', email=f'extra{i}@escola.com.br', role=ALUNO)
        escola.inserir(COL_ALUNOS, f'extra{i}', cpf='', birth_date='', class_id='turmaA')
    alunos_ids = ['aluno1'] + [f'extra{i}' for i in range(5)]

    with mock.patch('etda.core.database.LIMITE_LOTE', 2):
        gravadas = services.salvar_presencas(
            _professor(escola), 'mat', 'bim1', '2025-03-10', alunos_ids, set(alunos_ids), 'turmaA'
        )

    assert gravadas == 6
    assert escola.commits == [2, 2, 2]
    assert len(escola.dados[COL_PRESENCAS]) == 6


def test_salvar_presencas_data_invalida(escola):
    with pytest.raises(ErroValidacao):
        services.salvar_presencas(_professor(escola), 'mat', 'bim1', '10/03/2025', ['aluno1'], set())


def test_historico_presencas(escola):
    professor = _professor(escola)
    services.salvar_presencas(professor, 'mat', 'bim1', '2025-03-10', ['aluno1'], set())
    services.salvar_presencas(professor, 'mat', 'bim1', '2025-03-12', ['aluno1'], {'aluno1'})
    assert services.historico_presencas('aluno1', 'mat', 'bim1') == [
        {'date': '2025-03-12', 'present': True},
        {'date': '2025-03-10', 'present': False},
    ]


def test_bimestres_do_professor(escola):
    bimestres = services.bimestres_do_professor(_professor(escola))
    assert [b['id'] for b in bimestres] == ['bim1', 'bim2']
    assert bimestres[0]['subject_name'] == 'Matemática'


# === ROTAS ===

def test_dashboard(professor):
    content = professor.get('/teacher/').data.decode('utf-8')
    assert "Paulo Professor" in content
    assert "Lançar notas" in content


def test_dashboard_sem_cadastro(escola, logar_como):
    escola.dados['teachers'].pop('prof1')
    content = logar_como('prof1').get('/teacher/').data.decode('utf-8')
    assert "Procure a secretaria" in content


def test_pagina_de_notas_lista_alunos(professor):
    response = professor.get('/teacher/grades?disciplina=mat&bimestre=bim1')
    content = response.data.decode('utf-8')
    assert response.status_code == 200
    assert 'name="nota1-aluno1"' in content
    assert "Bruno Aluno" in content


def test_pagina_de_notas_disciplina_alheia(professor):
    assert professor.get('/teacher/grades?disciplina=por&bimestre=bim3').status_code == 403


def test_post_de_notas(professor, escola):
    response = professor.post('/teacher/grades', data={
        'disciplina': 'mat', 'bimestre': 'bim1', 'turma': '',
        'nota1-aluno1': '5', 'nota2-aluno1': '6', 'faltas-aluno1': '1',
        'nota1-aluno2': '', 'nota2-aluno2': '', 'faltas-aluno2': '',
    }, follow_redirects=True)
    assert "Notas salvas com sucesso!" in response.data.decode('utf-8')
    assert escola.doc(COL_NOTAS, 'aluno1_bim1')['average'] == 5.5


def test_post_de_notas_em_bimestre_encerrado(professor, escola):
    response = professor.post('/teacher/grades', data={
        'disciplina': 'mat', 'bimestre': 'bim2', 'turma': '',
        'nota1-aluno1': '5', 'nota2-aluno1': '6', 'faltas-aluno1': '1',
    }, follow_redirects=True)
    assert "Bimestre encerrado" in response.data.decode('utf-8')
    assert escola.doc(COL_NOTAS, 'aluno1_bim2') is None


def test_post_de_notas_com_faltas_invalidas(professor, escola):
    response = professor.post('/teacher/grades', data={
        'disciplina': 'mat', 'bimestre': 'bim1', 'turma': '',
        'nota1-aluno1': '5', 'nota2-aluno1': '6', 'faltas-aluno1': '²',
    }, follow_redirects=True)
    assert response.status_code == 200
    assert "Quantidade de faltas inválida" in response.data.decode('utf-8')
    assert escola.doc(COL_NOTAS, 'aluno1_bim1') is None


def test_post_de_presenca(professor, escola):
    response = professor.post('/teacher/attendance', data={
        'disciplina': 'mat', 'bimestre': 'bim1', 'turma': 'turmaA', 'data': '2025-03-10',
        'alunos': ['aluno1'], 'presentes': [],
    }, follow_redirects=True)
    assert "Presença salva para 1 aluno(s)." in response.data.decode('utf-8')
    assert escola.doc(COL_PRESENCAS, 'aluno1_mat_bim1_2025-03-10')['present'] is False


def test_historico_json(professor, escola):
    escola.inserir(COL_PRESENCAS, 'aluno1_mat_bim1_2025-03-10', student_id='aluno1', subject_id='mat',
                   bimester_id='bim1', date='2025-03-10', present=True)
    response = professor.get('/teacher/attendance/history/aluno1?disciplina=mat&bimestre=bim1')
    assert response.status_code == 200
    assert response.get_json() == {
        'aluno': 'Ana Aluna',
        'registros': [{'date': '2025-03-10', 'present': True}],
    }


def test_historico_json_aluno_inexistente(professor):
    response = professor.get('/teacher/attendance/history/fantasma?disciplina=mat&bimestre=bim1')
    assert response.status_code == 404
