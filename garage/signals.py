"""Application signals."""
from blinker import Namespace

_signals = Namespace()

# Sent after an invoice mutation has been committed.
# kwargs: operation (str), invoice_id (int), tags (tuple of cache tags)
invoice_mutated = _signals.signal('invoice-mutated')

# Sent after a committed change of who can see which invoices (group moves,
# group deletion, user removal). kwargs: reason (str), tags
invoice_visibility_changed = _signals.signal('invoice-visibility-changed')

INVOICE_CACHE_TAGS = ('invoices', 'dashboard')


def notify_invoice_mutation(operation: str, invoice_id: int, sender=None) -> None:
    """Emit invoice_mutated for cache invalidation and metrics."""
    invoice_mutated.send(sender, operation=operation, invoice_id=invoice_id, tags=INVOICE_CACHE_TAGS)


def notify_visibility_change(reason: str, sender=None) -> None:
    invoice_visibility_changed.send(sender, reason=reason, tags=INVOICE_CACHE_TAGS)
