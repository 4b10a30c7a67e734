"""Bundled plugins."""

from slackscot.plugins.karma import KARMA_PLUGIN_NAME, Karma, new_karma
from slackscot.plugins.ohmonday import OH_MONDAY_PLUGIN_NAME, new_oh_monday
from slackscot.plugins.versioner import VERSIONER_PLUGIN_NAME, new_versioner

__all__ = [
    "KARMA_PLUGIN_NAME",
    "Karma",
    "OH_MONDAY_PLUGIN_NAME",
    "VERSIONER_PLUGIN_NAME",
    "new_karma",
    "new_oh_monday",
    "new_versioner",
]
