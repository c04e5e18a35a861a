# medtrack/models/__init__.py
from medtrack.models.medication import Medication
from medtrack.models.medication_record import MedicationRecord
from medtrack.models.weather_data import WeatherData
from medtrack.models.setting import Setting
