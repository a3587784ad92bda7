"""Agriportal admin — Entry Point.

Usage:
  python portal_admin.py login [--remember]
  python portal_admin.py logout
  python portal_admin.py status
  python portal_admin.py stats
  python portal_admin.py logs [--limit N]
  python portal_admin.py prune [--days N]
  python portal_admin.py passwd
  python portal_admin.py genpass
"""

import sys

from agriportal.cli import main

if __name__ == "__main__":
    sys.exit(main())
