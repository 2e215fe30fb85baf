"""Purchase workflow triggers.

After a sale the seller's email workflows (receipts, follow-up sequences) are
started by an external workflow service. This module builds the trigger event
and delivers it, either to a webhook or, when none is configured, to the log.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from config import settings_conf

logger = logging.getLogger(__name__)

class NotificationError(Exception):
    """Raised when a workflow trigger cannot be delivered."""
    pass

@dataclass(frozen=True)
class PurchaseWorkflowEvent:
    """A completed purchase, as seen by the seller's email workflows."""
    store_id: str
    customer_email: str
    customer_name: str
    product_id: str
    product_name: str
    product_type: str
    order_id: str
    amount: Decimal

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload['amount'] = str(self.amount)
        return payload

class WorkflowTrigger(ABC):
    """Starts the seller's product-purchase workflows."""

    @abstractmethod
    async def trigger_product_purchase_workflows(self, event: PurchaseWorkflowEvent) -> None:
        pass

class LoggingWorkflowTrigger(WorkflowTrigger):
    """Records triggers in the log only."""

    async def trigger_product_purchase_workflows(self, event):
        logger.info(
            f"Purchase workflow trigger for store {event.store_id}: "
            f"{event.product_name} ordered by {event.customer_email} (order {event.order_id})"
        )

class WebhookWorkflowTrigger(WorkflowTrigger):
    """POSTs triggers as JSON to the workflow service."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def _post(self, payload: Dict[str, Any]) -> None:
        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"Workflow trigger to {self.url} failed: {e}")

    async def trigger_product_purchase_workflows(self, event):
        await asyncio.to_thread(self._post, event.to_payload())
        logger.info(f"Triggered purchase workflows for order {event.order_id}")

def get_workflow_trigger(url: Optional[str] = None) -> WorkflowTrigger:
    """Build the trigger selected by the workflow_webhook_url setting."""
    url = url if url is not None else settings_conf.get('workflow_webhook_url')
    if url:
        return WebhookWorkflowTrigger(url)
    return LoggingWorkflowTrigger()

__all__ = [
    'NotificationError',
    'PurchaseWorkflowEvent',
    'WorkflowTrigger',
    'LoggingWorkflowTrigger',
    'WebhookWorkflowTrigger',
    'get_workflow_trigger'
]
