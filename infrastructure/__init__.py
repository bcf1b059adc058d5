"""
Infrastructure Package
======================

Adapters for external collaborators, each behind an abstract interface and
selected through settings.INFRASTRUCTURE.

Modules:
    - payments: Payment gateway (Stripe, mock)
    - email: Email channel (SMTP, mock)
    - notifications: In-app notifications (database, mock)
    - container: Lazily built, cached service instances
"""
