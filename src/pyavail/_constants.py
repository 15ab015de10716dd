"""Internal constants shared across the library."""

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/99.0.4844.51 Safari/537.36 Edg/99.0.1150.30"
)

# ------------------------------------------------------------------
# BSH B2B portal (SAP OData)
# ------------------------------------------------------------------

BSH_LOGIN_URL = "https://b2bportal.bsh-partner.com"
BSH_USERNAME_SELECTOR = "input#username"
BSH_PASSWORD_SELECTOR = "#password"
BSH_SUBMIT_SELECTOR = (
    "body > div > div > section > div:nth-child(2) > div > form > "
    "div:nth-child(3) > div.small-12.medium-4.columns > button"
)
BSH_READY_SELECTOR = "#SD_OM-BDI-content"
BSH_ODATA_ROOT = "https://b2bportal-cloud.bsh-partner.com/sap/opu/odata/bshb2b/SD_OM_SRV/"
BSH_SIMULATE_URL = f"{BSH_ODATA_ROOT}SOSimulate"
CSRF_HEADER = "x-csrf-token"

#: Substituted when the simulate order carries no usable backorder date.
BSH_NOT_FOUND = "Model availability not found."
#: Cleaned backorder values shorter than this are treated as absent.
BSH_MIN_AVAILABILITY_LENGTH = 10

# ------------------------------------------------------------------
# SubZero ordering web application
# ------------------------------------------------------------------

SUBZERO_DISPATCHER = "https://order.subzero.com/instance1/servlet/WebDispatcher"
SUBZERO_LOGON_FORM: dict[str, str] = {"mode": "logon", "env": "EnvZZ"}
SUBZERO_CART_TABLE = "#myScrollTable"
# Served with HTTP 200 in place of any page once the session has expired.
SUBZERO_LOGON_PAGE_SELECTOR = 'form[name="logon"], input[name="psswd"], input[name="mode"][value="logon"]'
SUBZERO_AVAILABILITY_CELL = 7
SUBZERO_NOT_FOUND = "Error finding item."

# ------------------------------------------------------------------
# Miele published spreadsheet
# ------------------------------------------------------------------

MIELE_SPREADSHEET_URL = "https://ws15.mieleusa.com/sbo-reports/reports/download.php?id=SlyUOJt9vOFlwUcXZleX"
MIELE_SPREADSHEET_NAME = "miele_appliance_availability.xlsx"
