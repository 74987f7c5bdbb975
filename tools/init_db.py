from scene_ai_core.config import get_settings
from scene_ai_core.db.database import create_db_engine, init_db


def main():
    settings = get_settings()
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    print(f"✅ DB creada/verificada usando DATABASE_URL ({engine.url.render_as_string(hide_password=True)}).")


if __name__ == "__main__":
    main()
