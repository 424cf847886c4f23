"""Static metadata describing Eurolytics."""

APP_NAME = "Eurolytics"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Eurolytics is an innovation-engagement portal. Employees submit ideas, take quizzes, "
    "earn points and badges, and join projects spawned from approved ideas."
)
