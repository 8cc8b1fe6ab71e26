import os
import logging
from dotenv import load_dotenv
load_dotenv()
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from config import config_dict
from models import db
from classes.exceptions import CalendarServiceError
from routes.calendars import calendar_bp
from routes.days import days_bp
from routes.terms import terms_bp
from routes.holidays import holidays_bp
from routes.class_import import class_import_bp
from routes.universities import university_bp

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(env=None):
    env = env or os.environ.get("FLASK_ENV", "production")
    app = Flask(__name__)
    app.config.from_object(config_dict.get(env, config_dict["production"]))

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Environment: %s", env)

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"], "supports_credentials": True}})

    db.init_app(app)
    migrate.init_app(app, db)

    @app.route('/')
    def home():
        return "Academic calendar API"

    @app.errorhandler(CalendarServiceError)
    def handle_service_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            logger.error("%s: %s", type(error).__name__, error)
        return jsonify({"error": str(error)}), error.status_code

    app.register_blueprint(calendar_bp, url_prefix='/api/calendars')
    app.register_blueprint(days_bp, url_prefix='/api/calendars')
    app.register_blueprint(terms_bp, url_prefix='/api/calendars')
    app.register_blueprint(holidays_bp, url_prefix='/api/holidays')
    app.register_blueprint(class_import_bp, url_prefix='/api/class-bulk-import')
    app.register_blueprint(university_bp, url_prefix='/api/universities')

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config['DEBUG'])
