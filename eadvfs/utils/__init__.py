# Utils package initialisation
# Import commonly used utility modules for easier access
from .metrics import MetricsCalculator
from .json_utils import NumpyJSONEncoder, save_json, load_json
from .time_series import TimeSeries, TimeSeriesPoint
