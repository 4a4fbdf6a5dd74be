"""
SQLAlchemy ORM Models
Defines the warehouse schema populated by the Jira sync tasks.
"""

from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey,
    Integer, String, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# ============================================
# REFERENCE DATA MODELS
# ============================================

class JiraUser(Base):
    """Jira user model. Rows are never deleted, only marked inactive."""
    __tablename__ = 'jira_users'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(255), nullable=False, unique=True)
    account_id = Column(String(255), nullable=False, unique=True)
    email = Column(String(255))
    name = Column(String(255))
    active = Column(Boolean, default=True)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraStatus(Base):
    """Jira status model."""
    __tablename__ = 'jira_statuses'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    status_category = Column(String(100))
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraPriority(Base):
    """Jira priority model."""
    __tablename__ = 'jira_priorities'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraResolution(Base):
    """Jira resolution model."""
    __tablename__ = 'jira_resolutions'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraCustomField(Base):
    """Custom field definition; source_id is the API field key (customfield_NNNNN)."""
    __tablename__ = 'jira_custom_fields'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(100), nullable=False, unique=True)
    name = Column(String(255))
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraLabel(Base):
    """Jira label model."""
    __tablename__ = 'jira_labels'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issues = relationship("IssueLabel", back_populates="label")


# ============================================
# PROJECT-LEVEL MODELS
# ============================================

class JiraProject(Base):
    """Jira project model."""
    __tablename__ = 'jira_projects'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    key = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    project_type_key = Column(String(100))
    private = Column(Boolean, default=False)
    total_issue_count = Column(Integer)
    last_issue_update_time = Column(DateTime)
    api_accessible = Column(Boolean, default=True)
    allowlisted = Column(Boolean, default=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    boards = relationship("JiraBoard", back_populates="project")
    issues = relationship("JiraIssue", back_populates="project")


class JiraIssueType(Base):
    """Jira issue type model."""
    __tablename__ = 'jira_issue_types'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    hierarchy_level = Column(Integer)
    project_id = Column(Integer, ForeignKey('jira_projects.id'))
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JiraBoard(Base):
    """Jira board model (Scrum/Kanban)."""
    __tablename__ = 'jira_boards'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    board_type = Column(String(50))  # 'scrum', 'kanban', 'simple'
    project_id = Column(Integer, ForeignKey('jira_projects.id'))
    api_accessible = Column(Boolean, default=True)
    supports_sprints = Column(Boolean, default=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("JiraProject", back_populates="boards")
    sprints = relationship("JiraSprint", back_populates="board")


class JiraSprint(Base):
    """Jira sprint model."""
    __tablename__ = 'jira_sprints'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    board_id = Column(Integer, ForeignKey('jira_boards.id'))
    name = Column(String(255), nullable=False)
    state = Column(String(50))  # 'active', 'closed', 'future'
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    complete_date = Column(DateTime)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    board = relationship("JiraBoard", back_populates="sprints")


class JiraSprintBoard(Base):
    """Sprint-Board association; a sprint can be shown on several boards."""
    __tablename__ = 'jira_sprint_boards'

    id = Column(Integer, primary_key=True)
    sprint_id = Column(Integer, ForeignKey('jira_sprints.id', ondelete='CASCADE'), nullable=False)
    board_id = Column(Integer, ForeignKey('jira_boards.id', ondelete='CASCADE'), nullable=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('sprint_id', 'board_id', name='uq_sprint_board'),
    )


# ============================================
# ISSUE MODELS
# ============================================

class JiraIssue(Base):
    """Main Jira issue model (central fact table)."""
    __tablename__ = 'jira_issues'

    id = Column(Integer, primary_key=True)
    source_id = Column(String(50), nullable=False, unique=True)
    key = Column(String(50), nullable=False)
    summary = Column(Text)
    source_url = Column(Text)

    project_id = Column(Integer, ForeignKey('jira_projects.id'))
    issue_type_id = Column(Integer, ForeignKey('jira_issue_types.id'))
    status_id = Column(Integer, ForeignKey('jira_statuses.id'))
    priority_id = Column(Integer, ForeignKey('jira_priorities.id'))
    resolution_id = Column(Integer, ForeignKey('jira_resolutions.id'))
    assignee_id = Column(Integer, ForeignKey('jira_users.id'))
    creator_id = Column(Integer, ForeignKey('jira_users.id'))

    # Stored as a key so parents synced later still resolve
    parent_key = Column(String(50))
    story_points = Column(Float)

    created_date = Column(DateTime)
    updated_date = Column(DateTime)
    resolution_date = Column(DateTime)
    due_date = Column(Date)

    # Derived from the changelog
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    synced_at = Column(DateTime)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("JiraProject", back_populates="issues")
    issue_type = relationship("JiraIssueType")
    status = relationship("JiraStatus")
    priority = relationship("JiraPriority")
    resolution = relationship("JiraResolution")
    assignee = relationship("JiraUser", foreign_keys=[assignee_id])
    creator = relationship("JiraUser", foreign_keys=[creator_id])

    labels = relationship("IssueLabel", back_populates="issue", cascade="all, delete-orphan")
    sprints = relationship("IssueSprint", back_populates="issue", cascade="all, delete-orphan")
    custom_field_values = relationship("IssueCustomFieldValue", back_populates="issue", cascade="all, delete-orphan")
    status_changes = relationship("IssueStatusChange", back_populates="issue", cascade="all, delete-orphan")


class IssueLabel(Base):
    """Issue-Label association."""
    __tablename__ = 'jira_issue_labels'

    id = Column(Integer, primary_key=True)
    issue_id = Column(Integer, ForeignKey('jira_issues.id', ondelete='CASCADE'), nullable=False)
    label_id = Column(Integer, ForeignKey('jira_labels.id', ondelete='CASCADE'), nullable=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("JiraIssue", back_populates="labels")
    label = relationship("JiraLabel", back_populates="issues")


class IssueSprint(Base):
    """Issue-Sprint association with sprint planning data."""
    __tablename__ = 'jira_issue_sprints'

    id = Column(Integer, primary_key=True)
    issue_id = Column(Integer, ForeignKey('jira_issues.id', ondelete='CASCADE'), nullable=False)
    sprint_id = Column(Integer, ForeignKey('jira_sprints.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(Integer, ForeignKey('jira_projects.id'))
    planned = Column(Boolean, default=True)
    planned_points = Column(Float)
    deleted_at = Column(DateTime)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("JiraIssue", back_populates="sprints")
    sprint = relationship("JiraSprint")


class SprintPlannedIssue(Base):
    """Append-only record of every issue ever planned into a sprint."""
    __tablename__ = 'jira_sprints_planned_issues'

    id = Column(Integer, primary_key=True)
    sprint_id = Column(Integer, ForeignKey('jira_sprints.id', ondelete='CASCADE'), nullable=False)
    issue_id = Column(Integer, ForeignKey('jira_issues.id', ondelete='CASCADE'), nullable=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('sprint_id', 'issue_id', name='uq_sprint_planned_issue'),
    )


class IssueCustomFieldValue(Base):
    """Issue custom field value (JSON text when the source value is structured)."""
    __tablename__ = 'jira_issue_custom_field_values'

    id = Column(Integer, primary_key=True)
    issue_id = Column(Integer, ForeignKey('jira_issues.id', ondelete='CASCADE'), nullable=False)
    custom_field_id = Column(Integer, ForeignKey('jira_custom_fields.id', ondelete='CASCADE'), nullable=False)
    value = Column(Text)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("JiraIssue", back_populates="custom_field_values")
    custom_field = relationship("JiraCustomField")


class IssueStatusChange(Base):
    """One row per observed status transition of an issue."""
    __tablename__ = 'jira_issue_status_changes'

    id = Column(Integer, primary_key=True)
    issue_id = Column(Integer, ForeignKey('jira_issues.id', ondelete='CASCADE'), nullable=False)
    status_id = Column(Integer, ForeignKey('jira_statuses.id'), nullable=False)
    status_change_date = Column(DateTime, nullable=False)
    row_created_at = Column(DateTime, default=datetime.utcnow)
    row_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("JiraIssue", back_populates="status_changes")
    status = relationship("JiraStatus")

    __table_args__ = (
        Index('ix_issue_status_changes_issue_date', 'issue_id', 'status_change_date'),
    )


# ============================================
# RUN TRACKING
# ============================================

class SyncRun(Base):
    """Sync run tracking model."""
    __tablename__ = 'sync_runs'

    id = Column(Integer, primary_key=True)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime)
    status = Column(String(50), nullable=False, default='running')  # 'completed', 'failed'
    duration_ms = Column(Integer)
    total_created = Column(Integer, default=0)
    total_updated = Column(Integer, default=0)
    total_errors = Column(Integer, default=0)
    successful_tasks = Column(Integer, default=0)
    failed_tasks = Column(Integer, default=0)
    result = Column(JSON)
