"""Clinic application: appointment scheduling, availability and chat.

This package contains models, services, views, the chat consumer and
route registrations implementing the API contract expected by the
front-end application.
"""
