"""Utility modules for prioritycache."""
