import logging
from typing import Optional
from ..models import AuditLog, Company

logger = logging.getLogger(__name__)


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Runs inside the caller's transaction, so the record disappears
    with a rolled-back operation.
    """

    if not company:
        company = getattr(instance, "company", None)

    # anonymous users are not persisted
    if user is not None and not getattr(user, "is_authenticated", False):
        user = None

    entry = AuditLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
    logger.debug("audit %s %s(%s)", action, entry.object_type, entry.object_id)
    return entry
