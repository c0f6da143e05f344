"""
Camada de Serviço (Service Layer) do Professor

Planilhas de lançamento de notas e de presença. O professor só lança nas
disciplinas atribuídas a ele, em bimestres daquela disciplina e ainda ativos.
"""

from datetime import date
from typing import Optional

from google.cloud import firestore

from etda.core import consultas, notas
from etda.core.constants import COL_BIMESTRES, COL_NOTAS, COL_PRESENCAS, BIMESTRE_ENCERRADO
from etda.core.database import get_db, LoteLimitado
from etda.core.erros import ErroAcesso, ErroNaoEncontrado, ErroValidacao
from etda.core.logger import get_logger

logger = get_logger(__name__)


def id_nota(aluno_id: str, bimestre_id: str) -> str:
    return f"{aluno_id}_{bimestre_id}"


def id_presenca(aluno_id: str, disciplina_id: str, bimestre_id: str, data: str) -> str:
    return f"{aluno_id}_{disciplina_id}_{bimestre_id}_{data}"


def carregar_professor(professor_id: str) -> dict:
    professor = consultas.obter_professor(professor_id)
    if professor is None:
        raise ErroNaoEncontrado("Cadastro de professor não encontrado. Procure a secretaria.")
    return professor


def bimestres_do_professor(professor: dict) -> list:
    """Bimestres de todas as disciplinas atribuídas, por data de início."""
    bimestres = []
    for disciplina in professor.get('subjects', []):
        bimestres.extend(consultas.listar_bimestres(disciplina['id']))
    return sorted(bimestres, key=lambda b: (b.get('start_date') or '', b.get('subject_name') or ''))


def validar_contexto(professor: dict, disciplina_id: str, bimestre_id: Optional[str] = None,
                     exigir_ativo: bool = False) -> Optional[dict]:
    """
    Confere se a disciplina é do professor e se o bimestre pertence a ela.

    Returns:
        dict | None: O bimestre (quando informado).

    Raises:
        ErroAcesso: disciplina não atribuída ao professor.
        ErroValidacao: bimestre de outra disciplina ou encerrado (exigir_ativo).
    """
    if disciplina_id not in professor.get('subject_ids', []):
        logger.warning(f"Professor {professor.get('email')} tentou acessar a disciplina {disciplina_id}")
        raise ErroAcesso("Disciplina não atribuída a este professor.")

    if not bimestre_id:
        return None

    bimestre = consultas.obter(COL_BIMESTRES, bimestre_id)
    if bimestre is None or bimestre.get('subject_id') != disciplina_id:
        raise ErroValidacao("Bimestre não pertence à disciplina selecionada.")
    if exigir_ativo and bimestre.get('status') == BIMESTRE_ENCERRADO:
        raise ErroValidacao("Bimestre encerrado: lançamentos bloqueados.")
    return bimestre


def _exigir_selecao(disciplina_id: str, bimestre_id: str) -> None:
    if not disciplina_id or not bimestre_id:
        raise ErroValidacao("Selecione a disciplina e o bimestre.")


def _alunos_ordenados(turma_id: Optional[str]) -> list:
    return sorted(consultas.listar_alunos(turma_id or None), key=lambda a: a['name'].lower())


def _somente_da_planilha(alunos_ids, turma_id: Optional[str], professor: dict) -> list:
    """Descarta IDs que não são de alunos listados na planilha (turma filtrada)."""
    validos = {a['id'] for a in consultas.listar_alunos(turma_id or None)}
    ignorados = [i for i in alunos_ids if i not in validos]
    if ignorados:
        logger.warning(f"Lançamento de {professor.get('email')} com alunos fora da planilha ignorados: {ignorados}")
    return [i for i in alunos_ids if i in validos]


# === NOTAS ===

def notas_existentes(disciplina_id: str, bimestre_id: str) -> dict:
    """Notas já gravadas para disciplina + bimestre, indexadas pelo aluno."""
    registros = consultas.filtrar(COL_NOTAS, 'bimester_id', bimestre_id)
    return {n['student_id']: n for n in registros if n.get('subject_id') == disciplina_id}


def planilha_notas(disciplina_id: str, bimestre_id: str, turma_id: Optional[str] = None) -> list:
    """Uma linha por aluno com as notas gravadas (ou vazias) e média/situação."""
    existentes = notas_existentes(disciplina_id, bimestre_id)
    linhas = []
    for aluno in _alunos_ordenados(turma_id):
        nota = existentes.get(aluno['id'])
        linha = {'aluno': aluno, 'lancada': nota is not None}
        if nota:
            linha.update({k: nota.get(k) for k in ('grade1', 'grade2', 'absences', 'average', 'status')})
        else:
            linha.update({'grade1': None, 'grade2': None, 'absences': None, 'average': None, 'status': None})
        linhas.append(linha)
    return linhas


def _mudou(existente: Optional[dict], lancamento: dict) -> bool:
    if existente is None:
        return True
    return any(existente.get(campo) != lancamento[campo] for campo in ('grade1', 'grade2', 'absences'))


def salvar_notas(professor: dict, disciplina_id: str, bimestre_id: str, entradas: dict,
                 turma_id: Optional[str] = None) -> int:
    """
    Grava as notas digitadas na planilha.

    Args:
        entradas: {aluno_id: {'grade1': str, 'grade2': str, 'absences': str}}
            com o texto digitado. Alunos com os três campos vazios e sem
            nota gravada são ignorados; campo vazio vale 0.
        turma_id: Turma filtrada na planilha; alunos de fora são descartados.

    Returns:
        int: Quantidade de notas inseridas ou atualizadas (0 = nada mudou).
    """
    _exigir_selecao(disciplina_id, bimestre_id)
    validar_contexto(professor, disciplina_id, bimestre_id, exigir_ativo=True)
    existentes = notas_existentes(disciplina_id, bimestre_id)
    permitidos = set(_somente_da_planilha(list(entradas), turma_id, professor))

    # Converte tudo antes de gravar: um texto inválido não deixa lote pela metade
    alteracoes = []
    for aluno_id, campos in entradas.items():
        if aluno_id not in permitidos:
            continue
        textos = {k: (campos.get(k) or '').strip() for k in ('grade1', 'grade2', 'absences')}
        existente = existentes.get(aluno_id)
        if existente is None and not any(textos.values()):
            continue

        lancamento = notas.montar_lancamento(
            notas.converter_nota(textos['grade1'] or 0),
            notas.converter_nota(textos['grade2'] or 0),
            notas.converter_faltas(textos['absences'] or 0),
        )
        if _mudou(existente, lancamento):
            alteracoes.append((aluno_id, existente, lancamento))

    db = get_db()
    lote = LoteLimitado(db)
    for aluno_id, existente, lancamento in alteracoes:
        ref = db.collection(COL_NOTAS).document(id_nota(aluno_id, bimestre_id))
        if existente is None:
            lote.set(ref, {
                'student_id': aluno_id,
                'subject_id': disciplina_id,
                'bimester_id': bimestre_id,
                'created_at': firestore.SERVER_TIMESTAMP,
                **lancamento,
            })
        else:
            lote.update(ref, lancamento)
    lote.commit()
    gravadas = lote.total
    if gravadas:
        logger.info(f"Notas salvas por {professor.get('email')}: {gravadas} (bimestre {bimestre_id})")
    return gravadas


# === PRESENÇA ===

def presencas_existentes(disciplina_id: str, bimestre_id: str, data: str) -> dict:
    registros = consultas.filtrar(COL_PRESENCAS, 'bimester_id', bimestre_id)
    return {
        r['student_id']: r for r in registros
        if r.get('subject_id') == disciplina_id and r.get('date') == data
    }


def planilha_presenca(disciplina_id: str, bimestre_id: str, data: str, turma_id: Optional[str] = None) -> list:
    existentes = presencas_existentes(disciplina_id, bimestre_id, data)
    return [
        {
            'aluno': aluno,
            'present': bool(existentes.get(aluno['id'], {}).get('present')),
            'registrada': aluno['id'] in existentes,
        }
        for aluno in _alunos_ordenados(turma_id)
    ]


def salvar_presencas(professor: dict, disciplina_id: str, bimestre_id: str, data: str,
                     alunos_ids: list, presentes: set, turma_id: Optional[str] = None) -> int:
    """
    Grava a chamada do dia: um registro por aluno listado, presente
    quando está em 'presentes' e ausente caso contrário.
    Regravar a mesma data substitui os registros (upsert).
    """
    _exigir_selecao(disciplina_id, bimestre_id)
    validar_contexto(professor, disciplina_id, bimestre_id, exigir_ativo=True)
    if not data:
        raise ErroValidacao("Informe a data da aula.")
    try:
        date.fromisoformat(data)
    except ValueError:
        raise ErroValidacao(f"Data inválida: '{data}'.")

    alunos_ids = _somente_da_planilha(alunos_ids, turma_id, professor)
    db = get_db()
    lote = LoteLimitado(db)
    for aluno_id in alunos_ids:
        ref = db.collection(COL_PRESENCAS).document(id_presenca(aluno_id, disciplina_id, bimestre_id, data))
        lote.set(ref, {
            'student_id': aluno_id,
            'subject_id': disciplina_id,
            'bimester_id': bimestre_id,
            'date': data,
            'present': aluno_id in presentes,
            'updated_at': firestore.SERVER_TIMESTAMP,
        }, merge=True)
    lote.commit()

    logger.info(f"Presença salva por {professor.get('email')}: {len(alunos_ids)} alunos em {data}")
    return len(alunos_ids)


def historico_presencas(aluno_id: str, disciplina_id: str, bimestre_id: str) -> list:
    """Presenças do aluno na disciplina + bimestre, data mais recente primeiro."""
    registros = [
        r for r in consultas.filtrar(COL_PRESENCAS, 'student_id', aluno_id)
        if r.get('subject_id') == disciplina_id and r.get('bimester_id') == bimestre_id
    ]
    registros.sort(key=lambda r: r.get('date') or '', reverse=True)
    return [{'date': r.get('date'), 'present': bool(r.get('present'))} for r in registros]
