#!/usr/bin/env python
"""
Check Jira Connection
Quick script to verify Jira credentials and the configured project scope.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jira_sync.config_manager import ConfigManager
from jira_sync.jira_client import JiraClient
from jira_sync.utils.logger import setup_logging, get_logger


def main() -> bool:
    """Check the Jira connection."""
    setup_logging()
    logger = get_logger(__name__)

    config = ConfigManager()
    jira_config = config.get_jira_config()
    sync_config = config.get_sync_config()

    print("=" * 60)
    print("Checking Jira Connection")
    print("=" * 60)
    print(f"\nJira URL: {jira_config.get('url')}")
    print(f"Email: {jira_config.get('email')}")
    print(f"API Token: {'configured' if jira_config.get('api_token') else 'MISSING'}")

    try:
        client = JiraClient(jira_config)

        if not client.test_connection():
            raise RuntimeError("Failed to authenticate against Jira")

        server_info = client.get_server_info()
        print("\nConnection successful")
        print(f"   Server Version: {server_info.get('version', 'Unknown')}")
        print(f"   Server Title: {server_info.get('serverTitle', 'Unknown')}")

        category_id = sync_config.get('project_category_id')
        projects = client.fetch_projects(category_id=str(category_id) if category_id is not None else None)
        allowed = set(config.get_project_keys())

        print(f"\nProjects in category {category_id}: {len(projects)}")
        for project in projects[:10]:
            marker = '*' if project.get('key') in allowed else ' '
            print(f"  {marker} {project.get('key')}: {project.get('name')}")
        if len(projects) > 10:
            print(f"   ... and {len(projects) - 10} more")

        print("\n" + "=" * 60)
        print("Jira Connection Check: PASSED")
        print("=" * 60)
        return True

    except Exception as e:
        print("\nJira Connection Check: FAILED")
        print(f"   Error: {e}")
        logger.error(f"Jira connection check failed: {e}", exc_info=True)
        return False


if __name__ == '__main__':
    success = main()
    sys.exit(0 if success else 1)
