"""CRM Account Gateway Flask Application Package.

To use the Flask app:
    from gateway.flask_app import create_app

To use the Dynamics client:
    from gateway.core.dynamics import DynamicsClient, TokenProvider
"""
# Note: We don't import flask_app by default to avoid Flask dependency
# for CLI scripts that only use gateway.core
