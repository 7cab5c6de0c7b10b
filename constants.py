# constants.py

AREA_RECOMMENDATIONS = {
    "marketing": [
        "Evaluate the ROI of current campaigns",
        "Focus on the most effective digital channels",
        "Weigh organic against paid marketing",
        "Review agreements with external agencies",
    ],
    "personnel": [
        "Review the organizational structure",
        "Evaluate productivity by department",
        "Consider process automation",
        "Optimize compensation schemes",
    ],
    "infrastructure": [
        "Review recurring service contracts",
        "Evaluate moving workloads to cloud services",
        "Optimize physical office space",
        "Renegotiate supplier contracts",
    ],
}

DEFAULT_AREA_RECOMMENDATION = "Review spending in this category"

OPTIMIZATION_NEXT_STEPS = [
    "Review each optimization area in detail",
    "Implement lower-risk changes first",
    "Monitor the impact monthly",
    "Adjust the strategy based on results",
]

GENERIC_RECOMMENDATIONS = [
    "Review monthly expenses to identify savings opportunities",
    "Set a monthly budget and monitor it regularly",
    "Consider investment options that match your risk profile",
]

FALLBACK_RESPONSE = "Sorry, I could not generate a response."

PROMPTS = {
    "system": """
You are a specialized financial assistant for the bank, helping {audience} with their finances.

User context:
- User type: {user_type_label}
- User ID: {user_id}
- Data source: {mode_label}

{financial_context}
{recommendations_section}
IMPORTANT INSTRUCTIONS:
1. ALWAYS use the real financial data above to answer specific questions about amounts, expenses and income.
2. For questions about trends, use the historical data shown.
3. For recommendation questions, {recommendation_priority}.
4. For general financial advice, combine your general knowledge with insights from the data.
5. Reference specific numbers whenever relevant.
6. If the data shows problems (such as high spending in a category), mention them proactively.

Answer:
- Clearly and concisely
- Professionally but friendly
- Focused on practical, data-based solutions
- With examples that use the user's real numbers
- In {language}

User question: {message}
""",
    "company_context": """
CURRENT COMPANY FINANCIAL DATA (ID: {user_id}):

RECENT KPIs:
{kpi_lines}

EXPENSE DISTRIBUTION BY CATEGORY:
{distribution_lines}

AUTOMATIC RECOMMENDATIONS:
{decision_lines}
""",
    "personal_context": """
CURRENT PERSONAL FINANCIAL DATA (User: {user_id}):

SUMMARY:
- Total income: {total_income}
- Total expenses: {total_expense}
- Current balance: {balance}
- Status: {status}

TOP EXPENSE CATEGORIES:
{category_lines}

LATEST TRANSACTIONS:
{transaction_lines}
""",
    "analysis_context": """
ADVANCED FINANCIAL CONTEXT (analysis layer):
Type: {user_type}
User: {user_id}
Summary: {summary}
Data: {data}
""",
}
