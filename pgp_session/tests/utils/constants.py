ALICE_ID = "A1B2C3D4E5F60718"
BOB_ID = "0F1E2D3C4B5A6978"
