# apps/teams/__init__.py

"""
Teams - Times, membros e posse

Raiz da hierarquia Time -> Board -> Coluna -> Tarefa.
"""
