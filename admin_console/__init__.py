"""Admin console: access control and user management for the site's admin area."""
