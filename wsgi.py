import os

from decentscore import create_app

# factory con FLASK_ENV (default "development")
app = create_app(os.getenv("FLASK_ENV", "development"))

if __name__ == "__main__":
    # importante para Docker
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
