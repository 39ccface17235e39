"""
lbpasm CPU Package
==================

CPU definitions shared by the assemblers and the emulators: register
encodings and opcode tables. Keeping them in one place means the
encoder (``lbpasm.targets``) and the decoder (``lbpasm.emulator``) can
never disagree about an opcode.

Modules:
    v8: register encodings
    bitzzy: complete opcode tables
    parva: register maps and instruction field layout
"""
