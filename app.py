"""Flask web app for the Narrative Constraint Engine."""

from narrative_engine.api import create_app

app = create_app()

if __name__ == '__main__':
    app.run(debug=app.config.get("DEBUG", False), port=5000)
