from app.db.database import init_db, seed_defaults

def main():
    print("Creating database tables...")
    init_db()
    seed_defaults()
    print("Database tables created successfully!")

if __name__ == "__main__":
    main()
