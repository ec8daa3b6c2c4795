"""Run script for the SnapCal Telegram bot."""

from snapcal.main import main


if __name__ == "__main__":
    main()
