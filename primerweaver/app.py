import os
import importlib.util

import argparse
from flask import Flask, jsonify
from flask_cors import CORS
from primerweaver.config.logging_config import logger
from primerweaver.config.settings import Config, TestConfig
from primerweaver.routes.api import api


def load_python_config(module_path, env="development"):
    """Dynamically load a Python config module and return the correct environment settings."""
    try:
        spec = importlib.util.find_spec(module_path)
        if spec is None:
            raise ImportError(f"Module '{module_path}' not found.")

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if hasattr(module, "CONFIG"):
            config_data = module.CONFIG
            # If CONFIG contains multiple environments, extract the correct one
            if isinstance(config_data, dict) and env in config_data:
                return config_data[env]
            return config_data  # If it's not environment-based, return as is
        else:
            raise AttributeError(
                f"Module '{module_path}' does not contain a 'CONFIG' dictionary.")
    except (ImportError, AttributeError) as e:
        logger.error(f"Error loading config module '{module_path}': {e}")
        return {}


def configure_werkzeug_logging():
    """Configure Werkzeug to use our logging settings."""
    werkzeug_logger = logger.getChild("werkzeug")
    werkzeug_logger.setLevel(logger.level)


def create_app(config_module=None, env=None, testing=None):
    """Create and configure the Flask app."""
    if testing is None:
        testing = os.getenv('FLASK_TESTING', 'false').lower() == 'true'
    config_class = TestConfig if testing else Config

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config["ACTIVE_CONFIG"] = load_python_config(
        config_module or config_class.CONFIG_MODULE,
        env or config_class.CONFIG_ENV,
    )
    app.config["ENZYME_TABLE"] = app.config["ACTIVE_CONFIG"].get("enzyme_table")

    CORS(app, resources={
        r"/api/*": {
            "origins": config_class.CORS_ORIGINS,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })
    logger.info(f"Starting Flask app with config: {config_class.__name__}")

    configure_werkzeug_logging()

    app.register_blueprint(api)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors with JSON response."""
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(500)
    def server_error(error):
        """Handle 500 errors with JSON response."""
        return jsonify({'error': 'Internal server error'}), 500

    return app


def main():
    parser = argparse.ArgumentParser(
        description="Start the PrimerWeaver API with a custom config file.")
    parser.add_argument("--config", type=str, default="primerweaver.config.default_config",
                        help="Path to the config module (dot notation).")
    parser.add_argument("--env", type=str, default="development",
                        help="Configuration environment (development/testing/production).")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args()

    app = create_app(args.config, args.env)
    app.run(debug=app.config["DEBUG"], port=args.port)


if __name__ == "__main__":
    main()
