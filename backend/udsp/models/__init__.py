from udsp.models.user import User
from udsp.models.lab_test import LabTest
from udsp.models.test_data import TestData

__all__ = ["User", "LabTest", "TestData"]
