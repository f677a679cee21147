# /helpdesk_bot/config/strings.py

# This file contains all user-facing strings, making them easy to manage,
# update, and eventually localize without changing dialog logic.

# Help and fallback
HELP_MESSAGE = (
    "I'm the help desk bot and I can help you create a ticket or explore the knowledge base.\n"
    "You can tell me things like _I need to reset my password_ or _explore hardware articles_."
)
NOT_UNDERSTOOD = "I'm sorry, I did not understand '{text}'.\nType 'help' to know more about me :)"

# Generic failures
CLASSIFIER_UNAVAILABLE = (
    "I'm sorry, I'm having trouble understanding messages right now. Please try again in a few minutes."
)
GENERIC_ERROR = "Ooops! Something went wrong on my side. Let's start over, type 'help' if you need me."
PROMPT_RETRIES_EXCEEDED = "I still couldn't understand your answer, so I stopped here. You can start again if you want."
CONVERSATION_BUSY = "I'm still working on your previous message. Please try again in a moment."

# SubmitTicket
SEVERITY_PROMPT = "Which is the severity of this problem?"
CATEGORY_PROMPT = "Which would be the category for this ticket (software, hardware, network, and so on)?"
TICKET_CONFIRMATION_PROMPT = (
    'Great! I\'m going to create a "{severity}" severity ticket in the "{category}" category. '
    'The description I will use is "{description}". Can you please confirm that this information is correct?'
)
TICKET_SUBMISSION_FAILED = "Something went wrong while I was saving your ticket. Please try again later."
TICKET_CANCELLED = "Ok. The ticket was not created. You can start again if you want."

# Knowledge base
SEARCH_UNAVAILABLE = "Ooops! Something went wrong while contacting the knowledge base. Please try again later."
CATEGORY_CHOICE_PROMPT = (
    "Let's see if I can find something in the knowledge base for you. Which category is your question about?"
)
KB_RESULTS_INTRO = (
    "These are some articles I've found in the knowledge base for _'{original_text}'_, "
    "click **More details** to read the full article:"
)
KB_NO_RESULTS = "Sorry, I could not find any results in the knowledge base for _'{original_text}'_"
KB_NO_CATEGORIES = "Sorry, there are no categories in the knowledge base to explore yet."
ARTICLE_NOT_FOUND = "Sorry, I could not find that article."
KB_CARD_SUBTITLE = "Category: {category} | Search Score: {score}"
KB_CARD_IMAGE_URL = "https://bot-framework.azureedge.net/bot-icons-v1/bot-framework-default-7.png"
KB_MORE_DETAILS = "More details"
