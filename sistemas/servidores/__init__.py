# sistemas/servidores/__init__.py
"""
Base de servidores do RH: importação versionada e mesclagem em `users`
"""

from sistemas.servidores.router import router

__all__ = ["router"]
