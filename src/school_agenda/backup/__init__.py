"""
Backup subsystem.

Components:
- bundle.py: JSON array codec + strict validation
- coordinator.py: manual backup/restore (local file or remote object storage)
- remote.py: Supabase-compatible storage client (httpx)
- background.py: unattended periodic export
"""
