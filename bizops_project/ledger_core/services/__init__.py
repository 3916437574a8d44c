from .conversion import (ConversionResult, convert_quote_to_invoice,
                         find_orphaned_invoices)
from .documents import (create_invoice, create_quote, resolve_payment_terms,
                        transition_quote)
from .export import (AccountingEntry, ExportDocument, build_entries,
                     generate_ledger_export, normalize_tax_id)
from .integrity import check_company
from .lines import Totals, build_lines, clone_lines, compute_totals
from .numbering import next_number, peek_next_number, sequence_gaps
from .payment import (Settlement, invoice_balance, mark_overdue,
                      recompute_settlement, record_payment, reverse_payment,
                      settle_status)
