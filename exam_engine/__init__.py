"""Turns raw model output into canonical exam questions and grades submissions against them."""
