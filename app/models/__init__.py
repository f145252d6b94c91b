from .user import User
from .otp_challenge import OtpChallenge
