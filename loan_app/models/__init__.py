# Automatically load all models so metadata knows them
from loan_app.models.emi_model import Emi, EmiPayment, EmiStatus
from loan_app.models.expense_model import Expense
from loan_app.models.loan_model import Loan
from loan_app.models.rto_work_model import RtoWork
