"""Prompt templates for merge summaries and branch titles."""
