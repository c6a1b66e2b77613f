"""
Celery Tasks
Outbound chat delivery, run by the worker when CHAT_DELIVERY_MODE=queue.
"""

import logging
import time

from orderdesk.celery_worker import celery_app
from orderdesk.services.notifications.twilio_whatsapp import TwilioWhatsAppTransport

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=0)
def deliver_chat_message(self, contact: str, text: str) -> dict:
    """
    Send one WhatsApp message. Single attempt; a failure is reported
    in the result and never retried.

    Returns:
        dict: Delivery outcome
    """
    task_id = self.request.id
    start_time = time.time()

    result = TwilioWhatsAppTransport().send_message_sync(contact, text)
    elapsed = round(time.time() - start_time, 3)

    if result.success:
        logger.info(f"✅ Task {task_id}: message to {contact} sent in {elapsed}s ({result.message_id})")
    else:
        logger.warning(f"⚠️ Task {task_id}: message to {contact} failed - {result.error_message}")

    return {
        'success': result.success,
        'message_id': result.message_id,
        'error': result.error_message,
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }
