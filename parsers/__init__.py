from parsers.base import LogParseError, extract_log_date, read_log_file
from parsers.parser_log import build_day_record, parse_trading_log
