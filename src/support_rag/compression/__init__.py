"""Token-budgeted context compression."""
