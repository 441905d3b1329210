"""Receipt text assembly and bill-parser response handling."""
