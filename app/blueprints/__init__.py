"""
AI Governance Platform
Blueprint registry.
"""
