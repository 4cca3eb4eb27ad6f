"""Export and import work item tracking processes between Azure DevOps accounts."""

__version__ = "1.0.0"
