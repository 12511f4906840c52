"""Privileged user administration routed through the authorization evaluator."""
