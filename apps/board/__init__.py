# apps/board/__init__.py

"""
Board - Aplicação Kanban do TaskTrek

Funcionalidades:
- Boards, colunas e tarefas com controle por papel
- Exclusão em cascata com relatório de falha parcial
- Movimentação e conclusão de tarefas
"""
