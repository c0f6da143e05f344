"""
Ponto de Entrada da Aplicação (Runner)

Este script importa a "Application Factory" (create_app) do pacote 'etda'
e inicia o servidor de desenvolvimento do Flask.

Para executar o servidor:
(Com o ambiente virtual .venv ativo)
$ python run.py
"""

from etda import create_app

# Cria a instância da aplicação usando a factory
app = create_app()

if __name__ == "__main__":
    # Auto-reload ligado quando FLASK_DEBUG=1 no .env
    app.run(host='0.0.0.0', port=5000, debug=app.config['DEBUG'])
