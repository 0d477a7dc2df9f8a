"""TaskSync: task management API.

Accounts, sessions, email verification, password recovery, profiles with
avatar upload, templated email delivery through a priority queue, and
task records.
"""

__version__ = "0.1.0"
