FEATURE_EXTENSION = ".feature"
GHERKIN_MEDIA_TYPE = "text/x.cucumber.gherkin+plain"
DEFAULT_FEATURES = ["**/*.feature"]
DEFAULT_STEP_DEFINITIONS = [
    "[filepath]/**/*.py",
    "[filepath].py",
    "features/steps/**/*.py",
]
DEFAULT_CONFIG_FILES = ["stepdiag.yml", "stepdiag.yaml"]
STEP_DECORATOR_NAMES = ("given", "when", "then", "step")
