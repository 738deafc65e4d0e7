"""Self-service repository provisioning driven by GitHub issues.

This package turns issues filed against an organization's request repository
into new repositories cloned from a template:
- GitHub webhook handling for issue and issue comment events
- Issue body parsing into a structured repository request
- Authorization of the requester against the template and organization
- `/repo-bot` comment commands (ping-admins, approve)
- Template clone sequence (CODEOWNERS, teams, branch protections, labels,
  autolinks)
"""
