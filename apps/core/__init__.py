# apps/core/__init__.py

"""
Core - Aplicação principal do TaskTrek

Contém:
- Models (User, Team, Board, Column, Task e vínculos de membros)
- Autoridade de papéis e portão de mutações (permissions)
- Autenticação JWT e middleware Bearer
- Notificações por email
"""
