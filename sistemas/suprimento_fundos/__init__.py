# sistemas/suprimento_fundos/__init__.py
"""
Módulo Suprimento de Fundos (TJPA)

Fluxo de concessão e prestação de contas de suprimento de fundos:
- Solicitações tramitadas entre papéis (SUPRIDO, GESTOR, SOSFU, SEFIN, AJSEFIN)
- Documentos do processo com assinatura por PIN
- Lote ordinário quadrimestral para os supridos titulares
"""

from sistemas.suprimento_fundos.router import router

__all__ = ["router"]
