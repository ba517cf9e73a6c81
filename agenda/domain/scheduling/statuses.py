"""Slot status, event type and contract frequency tags"""

import unicodedata
from enum import Enum
from typing import Optional


class SlotStatus(str, Enum):
    VAGO = "Vago"
    AGUARDANDO = "AGUARDANDO"
    RESERVADO = "RESERVADO"
    CONFIRMADO = "CONFIRMADO"
    CONTRATADO = "CONTRATADO"
    INDISPONIVEL = "INDISPONIVEL"
    PENDENTE = "PENDENTE"
    # Terminal labels for personal activities
    CONCLUIDO = "CONCLUIDO"
    NAO_REALIZADO = "NAO_REALIZADO"


class EventType(str, Enum):
    ONLINE = "online"
    PRESENTIAL = "presential"
    PERSONAL = "personal"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


# Statuses that make a slot the only one allowed at its start instant
EXCLUSIVE_STATUSES = {SlotStatus.CONFIRMADO.value, SlotStatus.CONTRATADO.value}

# Statuses that demote same-start siblings to AGUARDANDO
COMMITTING_STATUSES = {SlotStatus.RESERVADO.value, SlotStatus.CONFIRMADO.value}

# Statuses that survive a block-day sweep
KEPT_ON_BLOCK_STATUSES = {
    SlotStatus.AGUARDANDO.value,
    SlotStatus.RESERVADO.value,
    SlotStatus.CONFIRMADO.value,
    SlotStatus.CONTRATADO.value,
}

# Statuses that make a slot occupied for availability probes, regardless of event type
PROBE_OCCUPIED_STATUSES = {
    SlotStatus.CONFIRMADO.value,
    SlotStatus.RESERVADO.value,
    SlotStatus.CONTRATADO.value,
    SlotStatus.INDISPONIVEL.value,
    SlotStatus.AGUARDANDO.value,
}

_KNOWN = {status.value.upper(): status.value for status in SlotStatus}


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).upper().replace(" ", "_")


def normalize_status(value: Optional[str]) -> str:
    """
    Canonical spelling for a status string

    None, "", "vago" and "VAGO" all become "Vago". Recognized statuses are
    matched ignoring case and accents ("Indisponível" -> "INDISPONIVEL").
    Anything else is a free-form label and is only trimmed.
    """
    if value is None:
        return SlotStatus.VAGO.value
    if isinstance(value, Enum):
        value = value.value
    cleaned = value.strip()
    if not cleaned:
        return SlotStatus.VAGO.value
    return _KNOWN.get(_fold(cleaned), cleaned)


def is_vacant_status(value: Optional[str]) -> bool:
    return normalize_status(value) == SlotStatus.VAGO.value


def normalize_event_type(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    cleaned = value.strip().lower()
    return cleaned or None
