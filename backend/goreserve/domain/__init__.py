"""Pure scheduling values and decision functions (no database access)."""
