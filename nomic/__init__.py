"""Nomic: a Slack slash-command voting game.

One proposal per channel, anonymous yes/no votes, and a public reveal.
"""

__version__ = "0.1.0"
