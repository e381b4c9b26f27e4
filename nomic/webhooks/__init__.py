"""Slack slash-command webhook.

Every POST is signature-verified before the command text is parsed and
dispatched. GET is an unauthenticated health probe.
"""
