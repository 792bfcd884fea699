from .admin import admin_bp
from .auth import auth_bp
from .engagement import engagement_bp
from .public import public_bp
from .uploads import uploads_bp

def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(engagement_bp, url_prefix='/api')
    app.register_blueprint(public_bp, url_prefix='/api')
    app.register_blueprint(uploads_bp)
