from datetime import date, datetime

from railkiosk.models import to_moscow
from railkiosk.scraping.kiosk import RzdKiosk, parse_timetable

DAY = date(2026, 1, 9)

TIMETABLE_HTML = """
<div class="route-list">
  <div class="route-item">
    <span class="route-item__train-num">752А</span>
    <div class="route-item__departure"><time datetime="2026-01-09T05:30">05:30</time></div>
    <div class="route-item__arrival"><time datetime="2026-01-09T09:25">09:25</time></div>
    <div class="route-item__car-type">
      <span class="car-type__name">Эконом</span>
      <span class="car-type__price">от 2&nbsp;345 ₽</span>
      <span class="car-type__seats">124 места</span>
    </div>
    <div class="route-item__car-type">
      <span class="car-type__name">Бизнес</span>
      <span class="car-type__price">7 010 ₽</span>
    </div>
    <div class="route-item__car-type">
      <span class="car-type__name">Первый</span>
      <span class="car-type__price">Нет мест</span>
    </div>
  </div>
  <div class="route-item">
    <span class="route-item__train-num">020У</span>
    <div class="route-item__departure"><time>23:55</time></div>
    <div class="route-item__car-type">
      <span class="car-type__name">Купе</span>
      <span class="car-type__price">3 100 ₽</span>
      <span class="car-type__seats">8</span>
    </div>
  </div>
  <div class="route-item">
    <div class="route-item__departure"><time>12:00</time></div>
  </div>
</div>
"""


def test_parse_timetable_extracts_offers():
    tickets = parse_timetable(TIMETABLE_HTML, to_moscow(), DAY)

    assert [(t.train, t.car_type, t.cost, t.seats) for t in tickets] == [
        ("752А", "Эконом", 2345, 124),
        ("752А", "Бизнес", 7010, 0),
        ("020У", "Купе", 3100, 8),
    ]
    assert tickets[0].departure == datetime(2026, 1, 9, 5, 30)
    assert tickets[0].arrival == datetime(2026, 1, 9, 9, 25)
    assert tickets[2].departure == datetime(2026, 1, 9, 23, 55)
    assert tickets[2].arrival is None
    assert all(t.route == to_moscow() and t.id is None for t in tickets)


def test_parse_empty_timetable():
    assert parse_timetable('<div class="route-list__empty">Поездов нет</div>', to_moscow(), DAY) == []


def test_build_url_uses_station_codes(settings):
    settings.kiosk_url = "https://kiosk.example/{origin}/{destination}/{date}"
    kiosk = RzdKiosk(settings)
    assert kiosk.build_url(DAY, to_moscow()) == "https://kiosk.example/2004000/2000000/09.01.2026"
    assert kiosk.build_url(DAY, to_moscow().reversed()) == "https://kiosk.example/2000000/2004000/09.01.2026"


NIGHT_TRAIN_HTML = """
<div class="route-item">
  <span class="route-item__train-num">020У</span>
  <div class="route-item__departure"><time>23:55</time></div>
  <div class="route-item__arrival"><time>07:55</time></div>
  <div class="route-item__car-type">
    <span class="car-type__name">Купе</span>
    <span class="car-type__price">3 100 ₽</span>
  </div>
</div>
"""


def test_night_train_arrives_next_day():
    [ticket] = parse_timetable(NIGHT_TRAIN_HTML, to_moscow(), DAY)

    assert ticket.departure == datetime(2026, 1, 9, 23, 55)
    assert ticket.arrival == datetime(2026, 1, 10, 7, 55)
    assert ticket.day == DAY
