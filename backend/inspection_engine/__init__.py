"""PES Inspection Engine - lifecycle rules for gas installation commissioning inspections."""
