from .auth import auth_bp
from .base_route import base_bp
from .cron import cron_bp
from .attendance import attendance_bp
from .capacity import capacity_bp
from .closeout import closeout_bp

def register_routes(app):
    app.register_blueprint(base_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(cron_bp, url_prefix='/cron')
    app.register_blueprint(attendance_bp, url_prefix='/attendance')
    app.register_blueprint(capacity_bp, url_prefix='/clinical/capacity')
    app.register_blueprint(closeout_bp, url_prefix='/clinical/internships')
