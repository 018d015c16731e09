"""External service integrations.

Modules:
    notify_agent    new-submission alert email (SendGrid API or SMTP)
"""
