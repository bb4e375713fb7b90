# Overview: Flask extension instances for the blob storage database.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
