"""
Flask blueprints for organizing routes by domain.
"""


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from blueprints.api_v1 import api_v1_bp
    app.register_blueprint(api_v1_bp)
