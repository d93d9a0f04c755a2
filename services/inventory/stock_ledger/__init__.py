"""Stock ledger service: append-only inventory movements and derived views."""
