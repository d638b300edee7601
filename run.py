"""
Application entry point
Starts the Flask development server
"""
from dotenv import load_dotenv

load_dotenv()

import config  # noqa: E402
from app import create_app  # noqa: E402

app = create_app()

if __name__ == '__main__':
    app.logger.info(f"Starting Flask application on {config.FLASK_HOST}:{config.FLASK_PORT}")
    app.logger.info(f"Debug mode: {config.FLASK_DEBUG}")

    app.run(
        host=config.FLASK_HOST,
        port=config.FLASK_PORT,
        debug=config.FLASK_DEBUG,
        threaded=True
    )
