"""
Jira Sync
Copies users, projects, boards, custom fields, sprints and issues from Jira
Cloud into a relational warehouse.
"""

__version__ = '1.0.0'
