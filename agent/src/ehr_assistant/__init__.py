"""EHR AI Assistant.

This package contains the conversational assistant for clinic staff: a chat
API backed by a tool-calling agent that answers questions and manages
records through the EHR REST API, always acting with the requesting user's
own credentials.
"""
