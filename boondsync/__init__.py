"""
boondsync: BoondManager <-> MongoDB synchronisation.

Packages:
- boondmanager: API client, dictionary, field mapping, quality checks
- services: import, production -> sandbox sync, sandbox export, workflow
- common: configuration, logging, resilience, MongoDB repositories
"""
