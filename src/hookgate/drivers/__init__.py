"""Driver registry table: maps built-in driver names to lazy-import class paths."""

BUILTIN_DRIVERS: dict[str, str] = {
    "stripe": "hookgate.drivers.stripe.StripeDriver",
    "github": "hookgate.drivers.github.GitHubDriver",
    "slack": "hookgate.drivers.slack.SlackDriver",
    "twilio": "hookgate.drivers.twilio.TwilioDriver",
    "hmac": "hookgate.drivers.generic_hmac.HmacDriver",
}


def import_driver(dotted_path: str):
    """Import a driver class from its dotted module path."""
    import importlib

    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
