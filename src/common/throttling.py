from ninja_extra.throttling import AnonRateThrottle, UserRateThrottle


class AnonDefaultThrottle(AnonRateThrottle):
    rate = "60/min"


class UserDefaultThrottle(UserRateThrottle):
    rate = "300/min"


class OtpThrottle(AnonRateThrottle):
    rate = "10/min"


class RegistrationThrottle(AnonRateThrottle):
    rate = "30/min"
