# apps/__init__.py

"""
TaskTrek - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Usuários, autenticação JWT, papéis, permissões e notificações
- teams: Times e seus membros
- board: Boards, colunas e tarefas
"""

__version__ = '0.1.0'
