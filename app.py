from flask import Flask
from flask_cors import CORS

from lakbayrouting.config import config
from routing import routing_bp, initialize_trip_planner


def create_app(planner=None) -> Flask:
    """Create the Flask app; ``planner`` overrides the configured TripPlanner"""
    app = Flask(__name__)
    CORS(app)

    # Register Blueprints
    app.register_blueprint(routing_bp)
    initialize_trip_planner(planner)
    return app


if __name__ == '__main__':
    api = config.get_api_config()
    app = create_app()
    print(f"\n🚀 Lakbay trip planner running at: http://{api['host']}:{api['port']}\n")
    app.run(host=api['host'], port=api['port'], debug=api['debug'])
