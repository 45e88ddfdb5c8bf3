"""Bidirectional sync between a Todoist project and Jira Cloud"""

__version__ = "1.0.0"
