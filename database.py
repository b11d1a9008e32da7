from mongoengine import connect, disconnect
from config import Config

def connect_db():
    connect(
        db=Config.DATABASE_NAME,
        host=Config.DATABASE_URL
    )

def close_db():
    disconnect()
