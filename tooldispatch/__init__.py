"""Instruction-to-tool dispatcher with a configurable tool catalogue."""
