"""Cortex — conversational memory and learned autonomy for the assistant."""
