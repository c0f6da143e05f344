"""
Constantes Globais do Sistema.
Fonte Única da Verdade (Single Source of Truth) para papéis, coleções e rótulos.
"""

# === PAPÉIS ===
SECRETARIA = 'secretary'
PROFESSOR = 'teacher'
ALUNO = 'student'

PAPEIS = {
    SECRETARIA: 'Secretaria',
    PROFESSOR: 'Professor',
    ALUNO: 'Aluno',
}

# Endpoint do dashboard de cada papel
DASHBOARDS = {
    SECRETARIA: 'secretaria_bp.dashboard',
    PROFESSOR: 'professor_bp.dashboard',
    ALUNO: 'aluno_bp.dashboard',
}

# === COLEÇÕES DO FIRESTORE ===
COL_USUARIOS = 'users'
COL_ALUNOS = 'students'
COL_PROFESSORES = 'teachers'
COL_DISCIPLINAS = 'subjects'
COL_TURMAS = 'classes'
COL_BIMESTRES = 'bimesters'
COL_NOTAS = 'grades'
COL_PRESENCAS = 'attendance'

# === BIMESTRES ===
OPCOES_BIMESTRE = ['1º Bimestre', '2º Bimestre', '3º Bimestre', '4º Bimestre']

BIMESTRE_ATIVO = 'active'
BIMESTRE_ENCERRADO = 'closed'

# === SITUAÇÃO DAS NOTAS ===
APROVADO = 'approved'
RECUPERACAO = 'recovery'
REPROVADO = 'failed'

NOTA_APROVACAO = 5.0
NOTA_RECUPERACAO = 3.0
NOTA_MINIMA = 0.0
NOTA_MAXIMA = 10.0

# Rótulo e classe CSS do badge de status
STATUS = {
    APROVADO: {'rotulo': 'Aprovado', 'classe': 'badge-approved'},
    RECUPERACAO: {'rotulo': 'Recuperação', 'classe': 'badge-recovery'},
    REPROVADO: {'rotulo': 'Reprovado', 'classe': 'badge-failed'},
    BIMESTRE_ATIVO: {'rotulo': 'Ativo', 'classe': 'badge-approved'},
    BIMESTRE_ENCERRADO: {'rotulo': 'Encerrado', 'classe': 'badge-muted'},
}

# === MENU LATERAL ===
MENUS = {
    SECRETARIA: [
        ('Dashboard', 'secretaria_bp.dashboard'),
        ('Alunos', 'secretaria_bp.alunos'),
        ('Professores', 'secretaria_bp.professores'),
        ('Disciplinas', 'secretaria_bp.disciplinas'),
        ('Turmas', 'secretaria_bp.turmas'),
        ('Bimestres', 'secretaria_bp.bimestres'),
        ('Relatórios', 'secretaria_bp.relatorios'),
    ],
    PROFESSOR: [
        ('Meu Perfil', 'professor_bp.dashboard'),
        ('Minhas Disciplinas', 'professor_bp.disciplinas'),
        ('Bimestres', 'professor_bp.bimestres'),
        ('Lançar Notas', 'professor_bp.notas'),
        ('Lançar Presença', 'professor_bp.presencas'),
    ],
    ALUNO: [
        ('Meu Perfil', 'aluno_bp.dashboard'),
        ('Minhas Disciplinas', 'aluno_bp.disciplinas'),
        ('Notas por Bimestre', 'aluno_bp.notas'),
        ('Faltas', 'aluno_bp.faltas'),
        ('Situação Final', 'aluno_bp.situacao'),
    ],
}

# === RELATÓRIOS CSV ===
RELATORIOS = {
    'alunos': {
        'titulo': 'Relatório de Alunos Matriculados',
        'descricao': 'Lista completa de todos os alunos com suas informações',
    },
    'notas': {
        'titulo': 'Relatório de Notas por Bimestre',
        'descricao': 'Notas de todos os alunos separadas por bimestre',
    },
    'aprovacao': {
        'titulo': 'Relatório de Aprovação',
        'descricao': 'Taxa de aprovação e reprovação por disciplina',
    },
    'disciplinas': {
        'titulo': 'Relatório de Disciplinas',
        'descricao': 'Lista de disciplinas com carga horária',
    },
}
