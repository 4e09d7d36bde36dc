"""Synchronous entry points for operators (management command, admin hooks)."""
import logging

from .content_client import readiness_gate
from .processor import UPDATE, build_job, process_job
from .reconciliation import run_full_sync

logger = logging.getLogger(__name__)


def sync_entity(entity_type: str, entity_id) -> dict:
    try:
        outcome = process_job(build_job(entity_type, entity_id, UPDATE))
    except Exception as exc:
        logger.exception("Manual sync of %s %s failed.", entity_type, entity_id)
        return {'success': False, 'message': f"Failed to sync {entity_type}: {exc}", 'entity_id': str(entity_id)}

    return {'success': outcome['success'], 'message': outcome['message'], 'entity_id': str(entity_id)}


def sync_all(entity_type: str) -> dict:
    result = run_full_sync(entity_type)
    if result['success']:
        message = f"Successfully synced {result['success_count']}/{result['total']} {entity_type} entities"
    else:
        message = (
            f"Synced {result['success_count']}/{result['total']} {entity_type} entities, "
            f"{result['error_count']} failed permanently"
        )
    return {**result, 'message': message}


def status() -> str:
    if readiness_gate.is_ready:
        return "CMS sync service is ready"
    return "CMS sync service is waiting for content type initialization"
