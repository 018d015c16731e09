"""
Fury Fence: marketing site backend

Packages:
    api/        Flask blueprint: form endpoints, note updates, static site
    forms/      Submission builder (contact + quote records, quote numbering)
    agents/     Outbound notifications (SendGrid / SMTP)
    core/       Record store, paths, secrets, security, startup checks
"""
