"""Sprouty - plant care reminders."""
