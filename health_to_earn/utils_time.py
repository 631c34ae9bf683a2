from datetime import date, datetime
import zoneinfo

def now_local(tz_name: str) -> datetime:
    return datetime.now(zoneinfo.ZoneInfo(tz_name))

def reward_day(moment: date) -> str:
    # YYYYMMDD, one reward per athlete per such day
    return moment.strftime("%Y%m%d")

def reward_key(day: str, athlete_id: int) -> str:
    return f"{day}-{athlete_id}"

def activity_at(moment: datetime) -> str:
    # "2021-11-03 10:15:00 +01:00"
    stamp = moment.isoformat(sep=" ", timespec="seconds")
    return f"{stamp[:19]} {stamp[19:]}".strip()

def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
