# sistemas/suprimento_fundos/services_numeracao.py
"""
Numeração anual de NUP, certidões e portarias.

O número é reservado dentro da transação do chamador: se ela for desfeita,
o número volta a ficar livre e a sequência não tem buracos.
"""

from typing import Optional

from sqlalchemy.orm import Session

from sistemas.suprimento_fundos.models import SequenciaDocumental
from utils.timezone import hoje_local
from utils.validators import format_nup


def proximo_numero(db: Session, prefixo: str, ano: Optional[int] = None) -> int:
    """Reserva o próximo número da sequência (prefixo, ano)."""
    ano = ano or hoje_local().year

    sequencia = (
        db.query(SequenciaDocumental)
        .filter(SequenciaDocumental.prefixo == prefixo, SequenciaDocumental.ano == ano)
        .with_for_update()
        .first()
    )
    if sequencia is None:
        sequencia = SequenciaDocumental(prefixo=prefixo, ano=ano, ultimo=0)
        db.add(sequencia)

    sequencia.ultimo = (sequencia.ultimo or 0) + 1
    db.flush()
    return sequencia.ultimo


def gerar_nup(db: Session, prefixo: str, ano: Optional[int] = None) -> str:
    ano = ano or hoje_local().year
    return format_nup(prefixo, ano, proximo_numero(db, prefixo, ano))
