"""Job programado de agregación de medianas."""
