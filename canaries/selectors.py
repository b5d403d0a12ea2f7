# Bank of Anthos frontend selectors

# Login page
USERNAME_INPUT = 'input[name="username"]'
PASSWORD_INPUT = 'input[name="password"]'
SUBMIT_BUTTON = 'button[type="submit"]'

# Signs of a logged-in session
BALANCE_INDICATOR = '.account-balance, .balance, [class*="balance"]'
LOGOUT_AFFORDANCE = 'a[href*="logout"], button[onclick*="logout"], .logout'
HOME_NAV_LINK = 'a[href="/home"]'

# Deposit surface (tried in order)
DEPOSIT_CONTROLS = (
    'a[href*="deposit"]',
    'button:has-text("Deposit")',
    '[onclick*="deposit"]',
)

TRANSACTION_FORM_ELEMENTS = 'form input, form select, form button[type="submit"]'

# Deposit form fields (each tuple tried in order)
AMOUNT_INPUTS = (
    'input[name="amount"]',
    'input[type="number"]',
    'input[placeholder*="amount"]',
)
EXTERNAL_ACCOUNT_INPUTS = (
    'input[name="account"]',
    'input[name="external_account_num"]',
)
ROUTING_NUMBER_INPUTS = (
    'input[name="routing"]',
    'input[name="external_routing_num"]',
)
DEPOSIT_SUBMIT_CONTROLS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Deposit")',
)

TRANSACTION_ROWS = 'table tr, .transaction, .transaction-item, [class*="transaction"]'
