# create_tables.py
import sys

from sqlalchemy.exc import SQLAlchemyError

from timbel.database import Base, SessionLocal, engine
from timbel.models import Department, Team

# Sample organization; users are created on their first sign-in
SAMPLE_ORGANIZATION = {
    "Engineering": ["Platform", "Product"],
    "Sales": ["Domestic", "Overseas"],
    "Operations": ["Support"],
}

def create_tables(drop: bool = False):
    """Create all tables"""
    try:
        if drop:
            Base.metadata.drop_all(bind=engine)
            print("🗑️  Dropped existing tables")
        Base.metadata.create_all(bind=engine)
        print("✅ All tables created successfully!")
    except SQLAlchemyError as e:
        print(f"❌ Error creating tables: {e}")
        raise

def seed_organization():
    """Create the sample departments and teams if there are none"""
    db = SessionLocal()
    try:
        if db.query(Department).count() > 0:
            print("ℹ️  Departments already exist, skipping seed")
            return

        for department_name, team_names in SAMPLE_ORGANIZATION.items():
            department = Department(name=department_name)
            db.add(department)
            db.flush()
            for team_name in team_names:
                db.add(Team(name=team_name, department_id=department.id))
            print(f"✅ {department_name}: {', '.join(team_names)}")

        db.commit()
        print("✅ Sample organization created!")
    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Error seeding organization: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_tables(drop="--drop" in sys.argv)
    seed_organization()
