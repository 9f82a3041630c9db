# sistemas/servidores/schemas.py
"""
Schemas Pydantic da importação de servidores
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel


class ImportacaoResponse(BaseModel):
    id: int
    versao: int
    arquivo: Optional[str] = None
    status: str
    total_registros: int
    inseridos: int
    atualizados: int
    ignorados: int
    mesclados_criados: Optional[int] = 0
    mesclados_atualizados: Optional[int] = 0
    conflitos: Optional[int] = 0
    erros: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None
    mesclado_em: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MesclagemRequest(BaseModel):
    criar_usuarios: bool = True
