"""
Flow notification service

Posts {patientName, patientPhone, slotId} to the external messaging
automation when a flow is sent for a slot. Delivery is best effort:
failures are logged and never reach the caller.
"""

import logging
from typing import Optional, Protocol

import httpx

from .. import config

logger = logging.getLogger(__name__)


class FlowNotifier(Protocol):
    async def send_flow(self, payload: dict) -> None:
        ...


class WebhookFlowNotifier:
    """Delivers flow payloads to a webhook URL"""

    def __init__(
        self,
        url: str,
        timeout: float = config.FLOW_WEBHOOK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def send_flow(self, payload: dict) -> None:
        logger.info(f"🚀 Sending flow for slot {payload.get('slotId')}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=payload)
            logger.info(f"📡 Flow webhook response status: {response.status_code}")
            response.raise_for_status()


class NullFlowNotifier:
    """Used when no webhook is configured"""

    async def send_flow(self, payload: dict) -> None:
        logger.debug(f"Flow webhook not configured, skipping slot {payload.get('slotId')}")


def get_flow_notifier() -> FlowNotifier:
    if config.FLOW_WEBHOOK_URL:
        return WebhookFlowNotifier(config.FLOW_WEBHOOK_URL)
    return NullFlowNotifier()


async def dispatch_flow(
    notifier: FlowNotifier,
    slot_id: str,
    patient_name: str,
    patient_phone: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    """
    Send a flow payload, swallowing any failure.

    Returns:
        (delivered, error_message)
    """
    payload = {"patientName": patient_name, "patientPhone": patient_phone, "slotId": slot_id}
    try:
        await notifier.send_flow(payload)
    except httpx.HTTPError as e:
        logger.error(f"❌ Flow webhook error for slot {slot_id}: {str(e)}")
        return False, str(e)
    except Exception as e:
        logger.error(f"❌ Flow notifier failed for slot {slot_id}: {str(e)}")
        return False, str(e)

    logger.info(f"✅ Flow dispatched for slot {slot_id}")
    return True, None
