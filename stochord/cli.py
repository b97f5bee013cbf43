'''Compose a random piece and save or play it'''

import argparse
import io
import logging
import sys

import mido
import numpy as np

from stochord import midifile
from stochord.errors import InvalidArgument, NoteOutOfRange
from stochord.generation import GenerationConfig, Style, duration_milliseconds, generate

MAX_ATTEMPTS = 10
DEFAULT_NAME = 'stochord'

def new_seed():
    return int(np.random.SeedSequence().entropy % (1 << 64))

def compose(args):
    '''Generates with args.seed, or with fresh seeds until one stays inside the note range'''
    style = Style.load(args.style) if args.style else Style()
    seed = args.seed
    attempts = 1 if seed is not None else MAX_ATTEMPTS
    for attempt in range(attempts):
        if args.seed is None:
            seed = new_seed()
        print(f'seed={seed}', file=sys.stderr)
        config = GenerationConfig(seed=seed, resolution=args.resolution, style=style)
        try:
            return generate(config)
        except NoteOutOfRange as exc:
            if attempt == attempts - 1:
                raise
            logging.warning('Discarding seed %d: %s', seed, exc)

def ask_file_name():
    try:
        return input('Name of saved midi file? [blank to discard] > ')
    except EOFError:
        return ''

def play_rt(data):
    mid = mido.MidiFile(file=io.BytesIO(data))
    port = mido.open_output()
    try:
        for msg in mid.play():
            port.send(msg)
    finally:
        port.close()

def create_cmd(argv=None):
    parser = argparse.ArgumentParser('stochord', description='Compose a random piece of music as a MIDI file')
    parser.add_argument('--seed', '-x', type=int, default=None)
    parser.add_argument('--output', '-o', type=str, help=f'File to write, {midifile.EXTENSION} is appended if missing; - writes to stdout')
    parser.add_argument('--style', type=str, default=None, help='JSON file overriding weight tables')
    parser.add_argument('--resolution', type=int, default=24, help='Ticks per quarter note')
    parser.add_argument('--play', action='store_true', help='Play through the default MIDI output port')
    parser.add_argument('--verbose', '-v', action='store_true')
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s')
    try:
        sequence = compose(args)
        data = midifile.serialize(sequence)
        print(f'{sequence.bpm} bpm, {sequence.length} quarter notes, {duration_milliseconds(sequence) / 1000:.1f} s', file=sys.stderr)
        if args.play:
            print('Performing...', file=sys.stderr)
            play_rt(data)
        output = args.output
        if output is None:
            output = ask_file_name() if args.play else DEFAULT_NAME
        if output == '-':
            midifile.save(sequence, sys.stdout.buffer)
        elif output:
            path = midifile.write_file(sequence, output)
            print(f'File saved at {path}', file=sys.stderr)
        elif args.play:
            print('The piece has been discarded.', file=sys.stderr)
    except (InvalidArgument, ArithmeticError, OSError) as exc:
        print(f'error: {exc}', file=sys.stderr)
        return 1
    return 0

def main():
    sys.exit(create_cmd())

if __name__ == '__main__':
    main()
