"""Shared quote model, arithmetic, formatting and path configuration."""
